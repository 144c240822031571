"""
HPGL output module.

Converts drawing primitives and shape buffers into HPGL instruction lines
and writes them to line sinks.
"""

from hpgl_plotter.hpgl.emitter import (
    ArcMode,
    PlotterEmitter,
    SessionStateError,
    format_number,
)
from hpgl_plotter.hpgl.sinks import (
    LineSink,
    MemorySink,
    SinkCreationError,
    TextSink,
    open_file_sink,
)

__all__ = [
    "ArcMode",
    "LineSink",
    "MemorySink",
    "PlotterEmitter",
    "SessionStateError",
    "SinkCreationError",
    "TextSink",
    "format_number",
    "open_file_sink",
]
