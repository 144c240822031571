"""Drawing surface -- the public drawing API that records to HPGL.

A ``DrawingSurface`` owns one transform stack, the vertex buffer of the
shape being built, and one ``PlotterEmitter``.  Drawing calls take host
coordinates (top-left origin, +Y down) on a canvas of fixed size.

Shape protocol::

    begin_shape(kind) -> vertex / curve_vertex / bezier_vertex ... -> end_shape(mode)

Shape vertices are transformed by the current matrix when they are
added, so ``push_matrix``/``pop_matrix`` inside a shape affect only the
vertices added in between.

Usage::

    surface = DrawingSurface(800, 600)
    surface.set_paper_size("A3")
    with surface.record("drawing.hpgl"):
        surface.line(0, 0, 100, 100)
        surface.begin_shape()
        surface.vertex(10, 10)
        surface.bezier_vertex(50, 0, 80, 40, 100, 100)
        surface.end_shape(EndMode.CLOSE)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from hpgl_plotter.configs.loader import PaperProfile, PlotterConfig, load_config
from hpgl_plotter.geometry.mapper import CoordinateMapper
from hpgl_plotter.geometry.transform import Point2D, TransformStack
from hpgl_plotter.hpgl.emitter import ArcMode, PlotterEmitter, SessionStateError
from hpgl_plotter.hpgl.sinks import LineSink, open_file_sink
from hpgl_plotter.shapes.buffer import (
    EndMode,
    ShapeError,
    ShapeKind,
    ShapeVertexBuffer,
)
from hpgl_plotter.shapes.curves import CurveFlattener
from hpgl_plotter.utils.logging_config import pop_context, push_context

logger = logging.getLogger(__name__)


class DrawingSurface:
    """Record drawing calls as an HPGL instruction stream.

    Parameters
    ----------
    width, height : float
        Host canvas size.
    config : PlotterConfig | None
        Plotter configuration; ``None`` loads the shipped default.
    """

    def __init__(
        self,
        width: float,
        height: float,
        config: PlotterConfig | None = None,
    ) -> None:
        self._cfg = config if config is not None else load_config()
        self.width = float(width)
        self.height = float(height)

        tess = self._cfg.tessellation
        self.transforms = TransformStack(self._cfg.max_stack_depth)
        self.chord_angle = tess.chord_angle_deg
        self._curves = CurveFlattener(
            self._append_flattened, tess.curve_detail, tess.bezier_detail,
        )
        self._buffer: ShapeVertexBuffer | None = None
        self.shape_kind: ShapeKind | None = None

        self._paper: PaperProfile | None = None
        self._path: Path | None = None
        self.emitter = PlotterEmitter(self._cfg)

    # ------------------------------------------------------------------
    # Session settings
    # ------------------------------------------------------------------

    @property
    def paper(self) -> PaperProfile | None:
        return self._paper

    @property
    def path(self) -> Path | None:
        return self._path

    def set_paper_size(self, name: str) -> None:
        """Select the paper profile for the next session."""
        if self.emitter.is_open:
            raise SessionStateError(
                "Paper size cannot change while a session is open"
            )
        self._paper = self._cfg.get_paper(name)

    def set_path(self, path: str | Path) -> None:
        """Set the output file for the next session."""
        self._path = Path(path)

    def set_chord_angle(self, degrees: float) -> None:
        if degrees <= 0:
            raise ValueError(f"chord angle must be > 0, got {degrees}")
        self.chord_angle = float(degrees)

    def set_curve_detail(self, detail: int) -> None:
        if detail < 1:
            raise ValueError(f"curve detail must be >= 1, got {detail}")
        self._curves.curve_detail = detail

    def set_bezier_detail(self, detail: int) -> None:
        if detail < 1:
            raise ValueError(f"bezier detail must be >= 1, got {detail}")
        self._curves.bezier_detail = detail

    @property
    def curve_detail(self) -> int:
        return self._curves.curve_detail

    @property
    def bezier_detail(self) -> int:
        return self._curves.bezier_detail

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    @property
    def is_recording(self) -> bool:
        return self.emitter.is_open

    def begin_record(
        self, path: str | Path | None = None, *, sink: LineSink | None = None,
    ) -> None:
        """Open a session on *sink*, or on a file at *path*.

        Without either, the path from ``set_path`` is used, falling back
        to the configured default.  Without a selected paper the default
        paper is used.

        Raises
        ------
        SessionStateError
            If a session is already open.
        SinkCreationError
            If the output file cannot be created.
        """
        if self.emitter.is_open:
            raise SessionStateError("begin_record() called while recording")

        if self._paper is None:
            self._paper = self._cfg.fallback_paper
            logger.warning(
                "Paper size undefined: defaulting to %s", self._paper.name,
            )

        self.emitter.mapper = CoordinateMapper(
            self._paper,
            self.width,
            self.height,
            self.transforms,
            paper_scaling=self._cfg.mapping.paper_scaling,
            quantize=self._cfg.mapping.quantize_to_integer,
        )

        if sink is None:
            if path is not None:
                self.set_path(path)
            if self._path is None:
                self._path = Path(self._cfg.output.default_path)
                logger.warning(
                    "Output path undefined: defaulting to %s", self._path,
                )
            sink = open_file_sink(self._path, self._cfg.output.encoding)
            push_context(session=str(self._path))
        else:
            push_context(session="<sink>")

        try:
            self.emitter.open(sink)
        except Exception:
            pop_context(keys=["session"])
            raise

    def end_record(self) -> None:
        """Write the footer and release the output.

        Raises
        ------
        SessionStateError
            If no session is open.
        """
        try:
            self.emitter.close()
        finally:
            pop_context(keys=["session"])

    @contextmanager
    def record(
        self, path: str | Path | None = None, *, sink: LineSink | None = None,
    ) -> Iterator[DrawingSurface]:
        """Context manager around ``begin_record`` / ``end_record``."""
        self.begin_record(path, sink=sink)
        try:
            yield self
        finally:
            if self.emitter.is_open:
                self.end_record()

    def __enter__(self) -> DrawingSurface:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.emitter.is_open:
            self.end_record()

    # ------------------------------------------------------------------
    # Pen / raw output
    # ------------------------------------------------------------------

    def select_pen(self, pen: int) -> None:
        self.emitter.select_pen(pen)

    def set_speed(self, speed: int) -> None:
        self.emitter.set_speed(speed)

    def println(self, line: str) -> None:
        """Insert a caller-built instruction line into the output."""
        self.emitter.write_raw(line)

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def push_matrix(self) -> None:
        self.transforms.push()

    def pop_matrix(self) -> None:
        self.transforms.pop()

    def reset_matrix(self) -> None:
        self.transforms.reset()

    def translate(self, dx: float, dy: float) -> None:
        self.transforms.translate(dx, dy)

    def scale(self, sx: float, sy: float | None = None) -> None:
        self.transforms.scale(sx, sy)

    def rotate(self, theta: float) -> None:
        self.transforms.rotate(theta)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def point(self, x: float, y: float) -> None:
        self.emitter.point(Point2D(x, y))

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self.emitter.line(Point2D(x1, y1), Point2D(x2, y2))

    def ellipse(self, x: float, y: float, w: float, h: float) -> None:
        """Ellipse centred on (x, y) with full width *w* and height *h*."""
        self.emitter.ellipse(Point2D(x, y), w, h, self.chord_angle)

    def circle(self, x: float, y: float, d: float) -> None:
        self.ellipse(x, y, d, d)

    def arc(
        self,
        x: float,
        y: float,
        w: float,
        h: float,
        start: float,
        stop: float,
        mode: ArcMode = ArcMode.OPEN,
    ) -> None:
        self.emitter.arc(
            Point2D(x, y), w, h, start, stop, mode, self.chord_angle,
        )

    def rect(self, x1: float, y1: float, x2: float, y2: float) -> None:
        """Rectangle between opposite corners (x1, y1) and (x2, y2)."""
        self.emitter.rect(Point2D(x1, y1), Point2D(x2, y2))

    def text(self, s: str, x: float, y: float) -> None:
        self.emitter.text(s, Point2D(x, y))

    def text_size(self, size_px: float) -> None:
        self.emitter.text_size(size_px)

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    @property
    def is_building_shape(self) -> bool:
        return self._buffer is not None

    @property
    def vertex_count(self) -> int:
        return 0 if self._buffer is None else len(self._buffer)

    def begin_shape(self, kind: ShapeKind = ShapeKind.POLYGON) -> None:
        if self._buffer is not None:
            logger.warning(
                "begin_shape() while building a shape; %d vertices discarded",
                len(self._buffer),
            )
        self._buffer = ShapeVertexBuffer(
            self._cfg.tessellation.initial_vertex_capacity
        )
        self.shape_kind = kind
        self._curves.reset_window()

    def end_shape(self, mode: EndMode = EndMode.OPEN) -> None:
        """Write the shape, closing it back to its first vertex for CLOSE."""
        buffer = self._require_shape("end_shape")
        if len(buffer) == 0:
            logger.warning("end_shape() with no vertices; nothing written")
            buffer.end()
        else:
            self.emitter.flush_shape(buffer, closed=mode is EndMode.CLOSE)
        self._buffer = None
        self.shape_kind = None
        self._curves.reset_window()

    def vertex(self, x: float, y: float) -> None:
        buffer = self._require_shape("vertex")
        self._curves.reset_window()
        buffer.append(self.transforms.current.apply(Point2D(x, y)))

    def curve_vertex(self, x: float, y: float) -> None:
        """Add a Catmull-Rom control point; spans start at the fourth."""
        self._require_shape("curve_vertex")
        self._curves.curve_vertex(self.transforms.current.apply(Point2D(x, y)))

    def bezier_vertex(
        self,
        x2: float,
        y2: float,
        x3: float,
        y3: float,
        x4: float,
        y4: float,
    ) -> None:
        """Cubic Bezier from the last vertex through two controls to (x4, y4).

        Raises
        ------
        ShapeError
            If the shape has no vertex to start from.
        """
        buffer = self._require_shape("bezier_vertex")
        if len(buffer) == 0:
            raise ShapeError("bezier_vertex() requires a preceding vertex()")
        m = self.transforms.current
        self._curves.bezier_segment(
            buffer.last(),
            m.apply(Point2D(x2, y2)),
            m.apply(Point2D(x3, y3)),
            m.apply(Point2D(x4, y4)),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_shape(self, op: str) -> ShapeVertexBuffer:
        if self._buffer is None:
            raise ShapeError(f"{op}() called outside begin_shape()/end_shape()")
        return self._buffer

    def _append_flattened(self, point: Point2D) -> None:
        # Flattened points are already transformed; appending resets the
        # curve window like a plain vertex() does.
        self._curves.reset_window()
        self._buffer.append(point)
