"""
Geometry module.

Affine transforms, the transform stack and host-to-plotter coordinate
mapping.
"""

from hpgl_plotter.geometry.mapper import CoordinateMapper
from hpgl_plotter.geometry.transform import (
    AffineTransform,
    Point2D,
    TransformStack,
    TransformStackError,
    TransformStackOverflow,
    TransformStackUnderflow,
)

__all__ = [
    "AffineTransform",
    "CoordinateMapper",
    "Point2D",
    "TransformStack",
    "TransformStackError",
    "TransformStackOverflow",
    "TransformStackUnderflow",
]
