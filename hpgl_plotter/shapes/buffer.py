"""Growable vertex storage for the shape being built.

Vertices live in a ``(capacity, 2)`` float64 array.  When the array is
full the next append reallocates at double capacity and copies the
existing rows in order, so appends are amortized O(1).
"""

from __future__ import annotations

from enum import Enum

import numpy as np

from hpgl_plotter.geometry.transform import Point2D

DEFAULT_CAPACITY = 512


class ShapeError(ValueError):
    """Raised when the shape-building protocol is used out of order."""

    pass


class ShapeKind(Enum):
    """Shape tag given to ``begin_shape``.

    Every kind is flushed as one polyline; the tag is kept for callers
    that inspect the shape being built.
    """

    POLYGON = "polygon"
    POINTS = "points"
    LINES = "lines"
    TRIANGLES = "triangles"
    TRIANGLE_STRIP = "triangle_strip"
    TRIANGLE_FAN = "triangle_fan"
    QUADS = "quads"
    QUAD_STRIP = "quad_strip"


class EndMode(Enum):
    """Whether ``end_shape`` draws the closing segment."""

    OPEN = "open"
    CLOSE = "close"


class ShapeVertexBuffer:
    """Ordered, growable sequence of points for one shape.

    Parameters
    ----------
    initial_capacity : int
        Number of rows allocated up front.
    """

    def __init__(self, initial_capacity: int = DEFAULT_CAPACITY) -> None:
        self._data: np.ndarray | None = None
        self._count = 0
        self.begin(initial_capacity)

    def begin(self, initial_capacity: int = DEFAULT_CAPACITY) -> None:
        """Allocate fresh storage and reset the count to zero."""
        if initial_capacity < 1:
            raise ValueError(
                f"initial_capacity must be >= 1, got {initial_capacity}"
            )
        self._data = np.empty((initial_capacity, 2), dtype=np.float64)
        self._count = 0

    @property
    def capacity(self) -> int:
        return 0 if self._data is None else self._data.shape[0]

    @property
    def is_active(self) -> bool:
        return self._data is not None

    def __len__(self) -> int:
        return self._count

    def append(self, point: Point2D) -> None:
        if self._data is None:
            raise ShapeError("append() on a buffer that has been ended")
        if self._count == self._data.shape[0]:
            grown = np.empty((self._data.shape[0] * 2, 2), dtype=np.float64)
            grown[: self._count] = self._data
            self._data = grown
        self._data[self._count, 0] = point.x
        self._data[self._count, 1] = point.y
        self._count += 1

    def last(self) -> Point2D:
        """Most recently appended point."""
        if self._data is None or self._count == 0:
            raise ShapeError("last() on an empty vertex buffer")
        x, y = self._data[self._count - 1].tolist()
        return Point2D(x, y)

    def points(self) -> list[Point2D]:
        """Copy of the stored points in append order."""
        if self._data is None:
            return []
        return [Point2D(x, y) for x, y in self._data[: self._count].tolist()]

    def end(self) -> list[Point2D]:
        """Return the stored points and release the storage."""
        pts = self.points()
        self._data = None
        self._count = 0
        return pts
