"""Curve flattening by forward differencing.

Both curve types are cubic polynomials per span.  A span is evaluated at
``detail`` evenly spaced parameter steps by forward differencing: the
draw matrix ``F @ B`` (forward-difference matrix times spline basis)
gives, per axis, the first, second and third differences at ``t = 0``,
and each step is three additions::

    p  += d1
    d1 += d2
    d2 += d3

Catmull-Rom spans come from a sliding window of the last four curve
points and run from the second window point to the third.  Bezier spans
start at the last vertex already in the shape and use three new control
points.

Flattened points are handed to an *emit* callable.  The caller's emit is
expected to behave like a plain vertex append, which clears the
Catmull-Rom window count, so the count is saved before and restored after
each span.
"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from hpgl_plotter.geometry.transform import Point2D

logger = logging.getLogger(__name__)

CATMULL_ROM_BASIS = np.array(
    [
        [-0.5, 1.5, -1.5, 0.5],
        [1.0, -2.5, 2.0, -0.5],
        [-0.5, 0.0, 0.5, 0.0],
        [0.0, 1.0, 0.0, 0.0],
    ],
    dtype=np.float64,
)

BEZIER_BASIS = np.array(
    [
        [-1.0, 3.0, -3.0, 1.0],
        [3.0, -6.0, 3.0, 0.0],
        [-3.0, 3.0, 0.0, 0.0],
        [1.0, 0.0, 0.0, 0.0],
    ],
    dtype=np.float64,
)


def forward_difference_matrix(segments: int) -> np.ndarray:
    """Matrix mapping cubic coefficients to forward differences at t=0."""
    if segments < 1:
        raise ValueError(f"segments must be >= 1, got {segments}")
    f = 1.0 / segments
    ff = f * f
    fff = ff * f
    return np.array(
        [
            [0.0, 0.0, 0.0, 1.0],
            [fff, ff, f, 0.0],
            [6 * fff, 2 * ff, 0.0, 0.0],
            [6 * fff, 0.0, 0.0, 0.0],
        ],
        dtype=np.float64,
    )


def draw_matrix(basis: np.ndarray, segments: int) -> np.ndarray:
    return forward_difference_matrix(segments) @ basis


def _differences(
    draw: np.ndarray, controls: tuple[Point2D, Point2D, Point2D, Point2D],
) -> tuple[list[float], list[float]]:
    xs = np.array([p.x for p in controls], dtype=np.float64)
    ys = np.array([p.y for p in controls], dtype=np.float64)
    return (draw[1:4] @ xs).tolist(), (draw[1:4] @ ys).tolist()


class CurveFlattener:
    """Catmull-Rom and Bezier span emitter for one shape.

    Parameters
    ----------
    emit : Callable[[Point2D], None]
        Receives every flattened point in order.
    curve_detail, bezier_detail : int
        Straight segments per Catmull-Rom / Bezier span.
    """

    def __init__(
        self,
        emit: Callable[[Point2D], None],
        curve_detail: int = 20,
        bezier_detail: int = 20,
    ) -> None:
        self._emit = emit
        self._window: list[Point2D] = []
        self._count = 0
        self.curve_detail = curve_detail
        self.bezier_detail = bezier_detail

    # ------------------------------------------------------------------
    # Detail settings
    # ------------------------------------------------------------------

    @property
    def curve_detail(self) -> int:
        return self._curve_detail

    @curve_detail.setter
    def curve_detail(self, value: int) -> None:
        self._curve_draw = draw_matrix(CATMULL_ROM_BASIS, value)
        self._curve_detail = int(value)

    @property
    def bezier_detail(self) -> int:
        return self._bezier_detail

    @bezier_detail.setter
    def bezier_detail(self, value: int) -> None:
        self._bezier_draw = draw_matrix(BEZIER_BASIS, value)
        self._bezier_detail = int(value)

    # ------------------------------------------------------------------
    # Catmull-Rom
    # ------------------------------------------------------------------

    @property
    def window_count(self) -> int:
        """Curve points accumulated since the last reset."""
        return self._count

    def reset_window(self) -> None:
        self._count = 0

    def curve_vertex(self, point: Point2D) -> int:
        """Add a curve point; returns the number of points emitted.

        Nothing is emitted until four points have accumulated; from then
        on every window emits exactly ``curve_detail`` points.
        """
        if self._count < len(self._window):
            self._window[self._count] = point
        else:
            self._window.append(point)
        self._count += 1

        if self._count < 4:
            return 0

        c = self._count
        return self.catmull_rom_segment(*self._window[c - 4:c])

    def catmull_rom_segment(
        self, p1: Point2D, p2: Point2D, p3: Point2D, p4: Point2D,
    ) -> int:
        """Emit ``curve_detail`` points along the span from *p2* to *p3*."""
        (x1, x2, x3), (y1, y2, y3) = _differences(
            self._curve_draw, (p1, p2, p3, p4),
        )
        x0, y0 = p2.x, p2.y

        saved = self._count
        for _ in range(self._curve_detail):
            x0 += x1
            x1 += x2
            x2 += x3
            y0 += y1
            y1 += y2
            y2 += y3
            self._emit(Point2D(x0, y0))
        self._count = saved
        return self._curve_detail

    # ------------------------------------------------------------------
    # Bezier
    # ------------------------------------------------------------------

    def bezier_segment(
        self, anchor: Point2D, c2: Point2D, c3: Point2D, c4: Point2D,
    ) -> int:
        """Emit ``bezier_detail`` points from *anchor* (excluded) to *c4*."""
        (x1, x2, x3), (y1, y2, y3) = _differences(
            self._bezier_draw, (anchor, c2, c3, c4),
        )
        x0, y0 = anchor.x, anchor.y

        for _ in range(self._bezier_detail):
            x0 += x1
            x1 += x2
            x2 += x3
            y0 += y1
            y1 += y2
            y2 += y3
            self._emit(Point2D(x0, y0))
        logger.debug(
            "Bezier span flattened into %d points", self._bezier_detail,
        )
        return self._bezier_detail
