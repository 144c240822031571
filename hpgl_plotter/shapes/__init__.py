"""
Shape construction module.

Vertex storage for the shape being built and the curve flatteners that
feed it.
"""

from hpgl_plotter.shapes.buffer import (
    EndMode,
    ShapeError,
    ShapeKind,
    ShapeVertexBuffer,
)
from hpgl_plotter.shapes.curves import CurveFlattener

__all__ = [
    "CurveFlattener",
    "EndMode",
    "ShapeError",
    "ShapeKind",
    "ShapeVertexBuffer",
]
