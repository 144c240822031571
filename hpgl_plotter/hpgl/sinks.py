"""Line-oriented output sinks for instruction streams.

The emitter only needs three capabilities from its output: append one
line, flush, and close.  ``TextSink`` adapts any text stream, and
``MemorySink`` keeps lines in a list (useful for previews and tests).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, TextIO

from hpgl_plotter.utils.fs import ensure_dir

logger = logging.getLogger(__name__)


class SinkCreationError(OSError):
    """Raised when an output file cannot be created."""

    pass


class LineSink(Protocol):
    """Anything the emitter can write instruction lines to."""

    def write_line(self, line: str) -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


class TextSink:
    """Write lines to a text stream, one per ``\\n``-terminated line.

    Parameters
    ----------
    stream : TextIO
        Destination stream.
    close_stream : bool
        Close *stream* in ``close()``.  Pass ``False`` for streams owned by
        the caller (``sys.stdout``, ``io.StringIO``).
    """

    def __init__(self, stream: TextIO, *, close_stream: bool = True) -> None:
        self._stream = stream
        self._close_stream = close_stream

    def write_line(self, line: str) -> None:
        self._stream.write(line)
        self._stream.write("\n")

    def flush(self) -> None:
        self._stream.flush()

    def close(self) -> None:
        self._stream.flush()
        if self._close_stream:
            self._stream.close()


class MemorySink:
    """Collect lines in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.closed = False

    def write_line(self, line: str) -> None:
        self.lines.append(line)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    def getvalue(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


def open_file_sink(
    path: str | Path, encoding: str = "ascii",
) -> TextSink:
    """Create (or truncate) *path* and wrap it in a ``TextSink``.

    Characters the encoding cannot represent are replaced with ``?``.

    Raises
    ------
    SinkCreationError
        If the file cannot be opened for writing.
    """
    path = Path(path)
    try:
        ensure_dir(path.parent)
        stream = open(path, "w", encoding=encoding, errors="replace", newline="\n")
    except OSError as e:
        raise SinkCreationError(
            f"Something went wrong trying to create file {path}: {e}"
        ) from e
    logger.debug("Opened output file %s", path)
    return TextSink(stream)
