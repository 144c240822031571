"""HPGL emitter -- drawing primitives to plotter instruction lines.

Every instruction is written on its own line and terminated by ``;``
inside the line.  Coordinates are mapped through a ``CoordinateMapper``
before they are written; the emitter never applies transforms itself.

Session framing::

    IN;SP<default pen>;     header, written by open()
    ...
    PA0,0;SP;               footer, written by close()

Lifecycle:
    Drawing calls made while no session is open log a warning and write
    nothing.  ``select_pen`` and ``set_speed`` behave the same way.
    Opening an open session or closing a closed one raises
    ``SessionStateError``.

Numeric fields:
    Integers are written as-is.  Floats are written in fixed-point
    notation with ``precision`` decimals, trailing zeros stripped, never
    in exponent notation and never with locale separators.
"""

from __future__ import annotations

import logging
import math
from enum import Enum

from hpgl_plotter.configs.loader import PlotterConfig
from hpgl_plotter.geometry.mapper import CoordinateMapper
from hpgl_plotter.geometry.transform import Point2D
from hpgl_plotter.hpgl.sinks import LineSink
from hpgl_plotter.shapes.buffer import ShapeVertexBuffer

logger = logging.getLogger(__name__)

# Host-unit difference below which width and height count as equal.
CIRCLE_TOLERANCE = 0.1

# Sampled ellipse coordinates closer to zero than this are written as this.
NEAR_ZERO = 0.01


class SessionStateError(RuntimeError):
    """Raised when a session is opened twice or closed while closed."""

    pass


class ArcMode(Enum):
    """How ``arc`` finishes the outline."""

    OPEN = "open"
    CHORD = "chord"
    PIE = "pie"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_number(value: float, precision: int = 4) -> str:
    """Render a numeric field for the instruction stream."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    text = f"{float(value):.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


# ---------------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------------


class PlotterEmitter:
    """Render primitives and shape buffers into HPGL lines.

    Parameters
    ----------
    config : PlotterConfig
        Validated plotter configuration.
    mapper : CoordinateMapper | None
        Host-to-device mapping.  May be replaced while the session is
        closed; must be set before ``open``.
    """

    def __init__(
        self, config: PlotterConfig, mapper: CoordinateMapper | None = None,
    ) -> None:
        self._cfg = config
        self._mapper = mapper
        self._sink: LineSink | None = None
        self._precision = config.mapping.precision
        self._terminator = config.pen.terminator_char

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._sink is not None

    @property
    def mapper(self) -> CoordinateMapper | None:
        return self._mapper

    @mapper.setter
    def mapper(self, mapper: CoordinateMapper) -> None:
        if self.is_open:
            raise SessionStateError(
                "Cannot change coordinate mapping while a session is open"
            )
        self._mapper = mapper

    def open(self, sink: LineSink) -> None:
        """Start a session on *sink* and write the header."""
        if self.is_open:
            raise SessionStateError("open() called on an open session")
        if self._mapper is None:
            raise SessionStateError("open() called before a mapper was set")
        self._sink = sink
        try:
            self._write(f"IN;SP{self._cfg.pen.default_pen};")
        except Exception:
            self._sink = None
            raise
        logger.info(
            "Plot session opened (paper=%s)", self._mapper.paper.name,
        )

    def close(self) -> None:
        """Write the footer, flush and release the sink."""
        if self._sink is None:
            raise SessionStateError("close() called on a closed session")
        sink = self._sink
        self._write("PA0,0;SP;")
        self._sink = None
        sink.flush()
        sink.close()
        logger.info("Plot session closed")

    # ------------------------------------------------------------------
    # Pen state
    # ------------------------------------------------------------------

    def select_pen(self, pen: int) -> None:
        if not self._require_open("select_pen"):
            return
        self._write(f"SP{int(pen)};")

    def set_speed(self, speed: int) -> None:
        if not self._require_open("set_speed"):
            return
        if not 0 <= speed <= self._cfg.pen.max_speed:
            logger.warning(
                "Speed %d outside 0..%d; written unchanged",
                speed,
                self._cfg.pen.max_speed,
            )
        self._write(f"VS{int(speed)};")

    def write_raw(self, line: str) -> None:
        """Pass a caller-built instruction line straight through."""
        if not self._require_open("write_raw"):
            return
        self._write(line)

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def move_to(self, p: Point2D) -> None:
        if not self._require_open("move_to"):
            return
        self._write(f"PU{self._xy(self._map(p))};")

    def line_to(self, p: Point2D) -> None:
        if not self._require_open("line_to"):
            return
        self._write(f"PD{self._xy(self._map(p))};")

    def pen_up(self) -> None:
        if not self._require_open("pen_up"):
            return
        self._write("PU;")

    # ------------------------------------------------------------------
    # Primitives (host coordinates)
    # ------------------------------------------------------------------

    def point(self, p: Point2D) -> None:
        if not self._require_open("point"):
            return
        self._write(f"PU{self._xy(self._map(p))};")
        self._write("PD;")
        self._write("PU;")

    def line(self, p1: Point2D, p2: Point2D) -> None:
        if not self._require_open("line"):
            return
        self._write(f"PU{self._xy(self._map(p1))};")
        self._write(f"PD{self._xy(self._map(p2))};")
        self._write("PU;")

    def circle(self, center: Point2D, radius: float, chord_angle: float) -> None:
        """Move to *center* and draw a full circle with ``CI``."""
        if not self._require_open("circle"):
            return
        r, _ = self._mapper.map_extent(radius, radius)
        self._write(f"PU{self._xy(self._map(center))};")
        self._write(f"CI{self._n(r)},{self._n(chord_angle)};")
        self._write("PU;")

    def ellipse(
        self, center: Point2D, w: float, h: float, chord_angle: float,
    ) -> None:
        """Draw an ellipse of size *w* x *h* centred on *center*.

        Near-equal width and height become a ``CI`` circle.  Otherwise the
        outline is sampled every *chord_angle* degrees starting at angle 0
        and closed back to the start, ``ceil(360 / chord_angle)`` pen-down
        moves in total.
        """
        if not self._require_open("ellipse"):
            return
        if abs(w - h) < CIRCLE_TOLERANCE:
            self.circle(center, w / 2.0, chord_angle)
            return

        rx = w / 2.0
        ry = h / 2.0
        start = self._map(
            Point2D(center.x + rx * math.cos(0.0), center.y + ry * math.sin(0.0))
        )
        self._write(f"PU{self._xy(start)};")

        steps = math.ceil(360.0 / chord_angle)
        for k in range(1, steps):
            t = math.radians(k * chord_angle)
            x = center.x + rx * math.cos(t)
            y = center.y + ry * math.sin(t)
            if abs(x) < NEAR_ZERO:
                x = NEAR_ZERO
            if abs(y) < NEAR_ZERO:
                y = NEAR_ZERO
            self._write(f"PD{self._xy(self._map(Point2D(x, y)))};")

        self._write(f"PD{self._xy(start)};")
        self._write("PU;")

    def arc(
        self,
        center: Point2D,
        w: float,
        h: float,
        start: float,
        stop: float,
        mode: ArcMode,
        chord_angle: float,
    ) -> None:
        """Draw a circular arc from *start* to *stop* radians.

        Host angles run clockwise on screen; the plotter measures
        counter-clockwise, so both are converted with ``360 - degrees``
        and the sweep is their difference.  Elliptical arcs (``w`` and
        ``h`` differing by the circle tolerance or more) are not supported
        and write nothing.
        """
        if not self._require_open("arc"):
            return
        if abs(w - h) >= CIRCLE_TOLERANCE:
            logger.warning(
                "arc() with w=%s h=%s: elliptical arcs are not supported", w, h,
            )
            return

        r = w / 2.0
        c = self._map(center)
        p1 = self._map(
            Point2D(center.x + r * math.cos(start), center.y + r * math.sin(start))
        )
        start_deg = 360.0 - start * 180.0 / math.pi
        stop_deg = 360.0 - stop * 180.0 / math.pi
        sweep = stop_deg - start_deg

        self._write(f"SP{self._cfg.pen.default_pen};")
        self._write(f"PU{self._xy(p1)};")
        self._write(
            f"PD;AA{self._xy(c)},{self._n(sweep)},{self._n(chord_angle)};"
        )
        if mode is ArcMode.CHORD:
            self._write(f"PD{self._xy(p1)};")
        elif mode is ArcMode.PIE:
            self._write(f"PD{self._xy(c)};")
            self._write(f"PD{self._xy(p1)};")
        self._write("PU;")

    def rect(self, p1: Point2D, p2: Point2D) -> None:
        """Outline the rectangle with opposite corners *p1* and *p2*."""
        if not self._require_open("rect"):
            return
        c11 = self._map(p1)
        c21 = self._map(Point2D(p2.x, p1.y))
        c22 = self._map(p2)
        c12 = self._map(Point2D(p1.x, p2.y))
        self._write(f"PU{self._xy(c11)};")
        self._write(
            f"PD{self._xy(c21)},{self._xy(c22)},{self._xy(c12)},{self._xy(c11)};"
        )
        self._write("PU;")

    def text(self, s: str, p: Point2D) -> None:
        """Write a label at *p*, terminated by the configured control char."""
        if not self._require_open("text"):
            return
        self._write(f"PU{self._xy(self._map(p))};")
        self._write(f"DT{self._terminator};")
        self._write(f"LB{s}{self._terminator};")

    def text_size(self, size_px: float) -> None:
        """Set character size from a host pixel size.

        The height in cm is scaled from the canvas height to the paper's
        physical height and halved; the width keeps a fixed aspect ratio.
        """
        if not self._require_open("text_size"):
            return
        paper = self._mapper.paper
        height_cm = size_px * paper.height_mm / self._mapper.canvas_height / 10 / 2
        width_cm = height_cm * self._cfg.pen.text_aspect
        self._write(f"SI{self._n(width_cm)},{self._n(height_cm)};")

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def flush_shape(self, buffer: ShapeVertexBuffer, closed: bool) -> None:
        """Drain *buffer* as one polyline, optionally back to its start.

        Buffered points are already transformed; only the device mapping
        is applied here.  The buffer is emptied even when nothing is
        written.
        """
        points = buffer.end()
        if not self._require_open("flush_shape"):
            return
        if not points:
            logger.warning("flush_shape() with no vertices; nothing written")
            return

        mapped = [self._mapper.to_device(p) for p in points]
        self._write(f"PU{self._xy(mapped[0])};")
        for p in mapped[1:]:
            self._write(f"PD{self._xy(p)};")
        if closed:
            self._write(f"PD{self._xy(mapped[0])};")
        self._write("PU;")
        logger.debug(
            "Flushed shape with %d vertices (closed=%s)", len(points), closed,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_open(self, op: str) -> bool:
        if self._sink is None:
            logger.warning("%s() used outside of an open session has no effect", op)
            return False
        return True

    def _write(self, line: str) -> None:
        self._sink.write_line(line)

    def _map(self, p: Point2D) -> Point2D:
        return self._mapper.map_point(p)

    def _n(self, value: float) -> str:
        return format_number(value, self._precision)

    def _xy(self, p: Point2D) -> str:
        return f"{self._n(p.x)},{self._n(p.y)}"
