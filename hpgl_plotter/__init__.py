"""
HPGL Plotter Package.

Records host drawing calls (lines, shapes, curves, arcs, text) as HPGL
instruction streams for pen plotters.  Transforms, curve flattening and
paper mapping all happen in Python; the output is plain text that any
HPGL plotter or viewer can consume.

Subpackages:
    geometry: Affine transforms, transform stack, coordinate mapping
    shapes: Vertex buffer and curve flattening
    hpgl: Instruction emitter and output sinks
    configs: Plotter configuration loading and validation
    utils: YAML and logging helpers
"""

from hpgl_plotter.shapes.buffer import EndMode, ShapeKind
from hpgl_plotter.hpgl.emitter import ArcMode
from hpgl_plotter.surface import DrawingSurface

__all__ = [
    "ArcMode",
    "DrawingSurface",
    "EndMode",
    "ShapeKind",
    "configs",
    "geometry",
    "hpgl",
    "shapes",
    "utils",
]
