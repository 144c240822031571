"""2D affine transforms and the save/restore transform stack.

Transforms follow the host drawing convention: every ``translate``,
``scale`` and ``rotate`` **post-multiplies** the current matrix, so the
most recently applied operation acts on points first.  Angles are in
radians.  Matrices are stored as the top two rows of a 3x3 homogeneous
matrix::

    | m00 m01 m02 |
    | m10 m11 m12 |
    |  0   0   1  |

Singular matrices (shear, scale by zero) are permitted.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TransformStackError(RuntimeError):
    """Base class for transform stack misuse."""

    pass


class TransformStackOverflow(TransformStackError):
    """Raised by ``push`` when the stack is already at capacity."""

    pass


class TransformStackUnderflow(TransformStackError):
    """Raised by ``pop`` when nothing has been pushed."""

    pass


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Point2D:
    """Immutable 2D point."""

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class AffineTransform:
    """Immutable 2x3 affine matrix."""

    m00: float = 1.0
    m01: float = 0.0
    m02: float = 0.0
    m10: float = 0.0
    m11: float = 1.0
    m12: float = 0.0

    @classmethod
    def identity(cls) -> AffineTransform:
        return cls()

    def compose(self, other: AffineTransform) -> AffineTransform:
        """Return ``self @ other`` (``other`` acts on points first)."""
        return AffineTransform(
            m00=self.m00 * other.m00 + self.m01 * other.m10,
            m01=self.m00 * other.m01 + self.m01 * other.m11,
            m02=self.m00 * other.m02 + self.m01 * other.m12 + self.m02,
            m10=self.m10 * other.m00 + self.m11 * other.m10,
            m11=self.m10 * other.m01 + self.m11 * other.m11,
            m12=self.m10 * other.m02 + self.m11 * other.m12 + self.m12,
        )

    def translate(self, dx: float, dy: float) -> AffineTransform:
        return AffineTransform(
            m00=self.m00,
            m01=self.m01,
            m02=dx * self.m00 + dy * self.m01 + self.m02,
            m10=self.m10,
            m11=self.m11,
            m12=dx * self.m10 + dy * self.m11 + self.m12,
        )

    def scale(self, sx: float, sy: float) -> AffineTransform:
        return AffineTransform(
            m00=self.m00 * sx,
            m01=self.m01 * sy,
            m02=self.m02,
            m10=self.m10 * sx,
            m11=self.m11 * sy,
            m12=self.m12,
        )

    def rotate(self, theta: float) -> AffineTransform:
        s = math.sin(theta)
        c = math.cos(theta)
        return AffineTransform(
            m00=c * self.m00 + s * self.m01,
            m01=-s * self.m00 + c * self.m01,
            m02=self.m02,
            m10=c * self.m10 + s * self.m11,
            m11=-s * self.m10 + c * self.m11,
            m12=self.m12,
        )

    def apply(self, point: Point2D) -> Point2D:
        return Point2D(
            self.m00 * point.x + self.m01 * point.y + self.m02,
            self.m10 * point.x + self.m11 * point.y + self.m12,
        )


# ---------------------------------------------------------------------------
# Stack
# ---------------------------------------------------------------------------


class TransformStack:
    """Current transform plus a bounded stack of saved snapshots.

    Parameters
    ----------
    capacity : int
        Maximum number of nested ``push`` calls.

    Notes
    -----
    ``pop`` restores the saved snapshot itself, so a
    ``push(); ...; pop()`` pair restores mapped coordinates bit-for-bit
    at any nesting depth.
    """

    def __init__(self, capacity: int = 32) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._saved: list[AffineTransform] = []
        self._current = AffineTransform.identity()

    @property
    def current(self) -> AffineTransform:
        return self._current

    @property
    def depth(self) -> int:
        return len(self._saved)

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self) -> None:
        if len(self._saved) == self._capacity:
            raise TransformStackOverflow(
                f"push() overflow: stack depth limit is {self._capacity}"
            )
        self._saved.append(self._current)

    def pop(self) -> None:
        if not self._saved:
            raise TransformStackUnderflow("pop() underflow: stack is empty")
        self._current = self._saved.pop()

    def translate(self, dx: float, dy: float) -> None:
        self._current = self._current.translate(dx, dy)

    def scale(self, sx: float, sy: float | None = None) -> None:
        self._current = self._current.scale(sx, sx if sy is None else sy)

    def rotate(self, theta: float) -> None:
        self._current = self._current.rotate(theta)

    def apply(self, other: AffineTransform) -> None:
        """Post-multiply an arbitrary matrix onto the current transform."""
        self._current = self._current.compose(other)

    def reset(self) -> None:
        """Reset the current transform to identity; saved entries are kept."""
        logger.debug("Transform reset at depth %d", len(self._saved))
        self._current = AffineTransform.identity()
