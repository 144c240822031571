"""Tests for the HPGL emitter.

Validates session framing, primitive instruction sequences, ellipse and
arc tessellation, label output and numeric field formatting.
"""

from __future__ import annotations

import dataclasses
import io
import logging

import pytest

from hpgl_plotter.configs.loader import MappingConfig, PlotterConfig, load_config
from hpgl_plotter.geometry.mapper import CoordinateMapper
from hpgl_plotter.geometry.transform import Point2D, TransformStack
from hpgl_plotter.hpgl.emitter import (
    ArcMode,
    PlotterEmitter,
    SessionStateError,
    format_number,
)
from hpgl_plotter.hpgl.sinks import MemorySink, TextSink
from hpgl_plotter.shapes.buffer import ShapeVertexBuffer

HEADER = "IN;SP1;"
FOOTER = "PA0,0;SP;"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> PlotterConfig:
    """Default config with unscaled, integer-quantized mapping."""
    return dataclasses.replace(
        load_config(), mapping=MappingConfig(False, True, 4),
    )


def _mapper(config: PlotterConfig, *, quantize: bool = True) -> CoordinateMapper:
    return CoordinateMapper(
        config.get_paper("A4"), 100.0, 100.0, TransformStack(),
        paper_scaling=False, quantize=quantize,
    )


@pytest.fixture()
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture()
def emitter(config: PlotterConfig, sink: MemorySink) -> PlotterEmitter:
    em = PlotterEmitter(config, _mapper(config))
    em.open(sink)
    return em


class _BrokenSink(MemorySink):
    def write_line(self, line: str) -> None:
        raise OSError("disk full")


def _body(sink: MemorySink) -> list[str]:
    """Lines written after the header."""
    assert sink.lines[0] == HEADER
    return sink.lines[1:]


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


class TestSession:
    def test_header_on_open(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        assert sink.lines == [HEADER]
        assert emitter.is_open

    def test_footer_on_close(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.close()
        assert sink.lines == [HEADER, FOOTER]
        assert sink.closed
        assert not emitter.is_open

    def test_open_twice_raises(self, emitter: PlotterEmitter) -> None:
        with pytest.raises(SessionStateError):
            emitter.open(MemorySink())

    def test_close_twice_raises(self, emitter: PlotterEmitter) -> None:
        emitter.close()
        with pytest.raises(SessionStateError, match="closed"):
            emitter.close()

    def test_open_without_mapper_raises(self, config: PlotterConfig) -> None:
        with pytest.raises(SessionStateError, match="mapper"):
            PlotterEmitter(config).open(MemorySink())

    def test_failed_header_leaves_session_closed(
        self, config: PlotterConfig, sink: MemorySink,
    ) -> None:
        em = PlotterEmitter(config, _mapper(config))
        with pytest.raises(OSError, match="disk full"):
            em.open(_BrokenSink())
        assert not em.is_open
        em.open(sink)
        assert sink.lines == [HEADER]

    def test_mapper_locked_while_open(
        self, emitter: PlotterEmitter, config: PlotterConfig,
    ) -> None:
        with pytest.raises(SessionStateError):
            emitter.mapper = _mapper(config)

    def test_drawing_on_closed_session_warns(
        self,
        config: PlotterConfig,
        sink: MemorySink,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        em = PlotterEmitter(config, _mapper(config))
        with caplog.at_level(logging.WARNING):
            em.line(Point2D(0.0, 0.0), Point2D(1.0, 1.0))
            em.select_pen(2)
        assert sink.lines == []
        assert "line() used outside of an open session" in caplog.text
        assert "select_pen() used outside of an open session" in caplog.text

    def test_custom_default_pen(self, config: PlotterConfig, sink: MemorySink) -> None:
        cfg = dataclasses.replace(config, pen=dataclasses.replace(config.pen, default_pen=3))
        PlotterEmitter(cfg, _mapper(cfg)).open(sink)
        assert sink.lines == ["IN;SP3;"]


# ---------------------------------------------------------------------------
# Pen state and raw output
# ---------------------------------------------------------------------------


class TestPenState:
    def test_select_pen(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.select_pen(2)
        assert _body(sink) == ["SP2;"]

    def test_speed(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.set_speed(10)
        assert _body(sink) == ["VS10;"]

    def test_speed_out_of_range_warns(
        self,
        emitter: PlotterEmitter,
        sink: MemorySink,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING):
            emitter.set_speed(500)
        assert _body(sink) == ["VS500;"]
        assert "outside" in caplog.text

    def test_write_raw(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.write_raw("VS5;")
        assert _body(sink) == ["VS5;"]


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


class TestPrimitives:
    def test_line(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.line(Point2D(0.0, 0.0), Point2D(100.0, 100.0))
        assert _body(sink) == ["PU0,100;", "PD100,0;", "PU;"]

    def test_point(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.point(Point2D(10.0, 10.0))
        assert _body(sink) == ["PU10,90;", "PD;", "PU;"]

    def test_moves(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.move_to(Point2D(1.0, 2.0))
        emitter.line_to(Point2D(3.0, 4.0))
        emitter.pen_up()
        assert _body(sink) == ["PU1,98;", "PD3,96;", "PU;"]

    def test_rect(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.rect(Point2D(10.0, 10.0), Point2D(30.0, 20.0))
        assert _body(sink) == [
            "PU10,90;",
            "PD30,90,30,80,10,80,10,90;",
            "PU;",
        ]

    def test_circle(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.circle(Point2D(50.0, 50.0), 10.0, 5.0)
        assert _body(sink) == ["PU50,50;", "CI10,5;", "PU;"]


# ---------------------------------------------------------------------------
# Ellipses
# ---------------------------------------------------------------------------


class TestEllipse:
    @pytest.mark.parametrize("chord_angle, pen_downs", [(5.0, 72), (7.0, 52), (10.0, 36)])
    def test_pen_down_count(
        self,
        emitter: PlotterEmitter,
        sink: MemorySink,
        chord_angle: float,
        pen_downs: int,
    ) -> None:
        emitter.ellipse(Point2D(50.0, 50.0), 40.0, 20.0, chord_angle)
        body = _body(sink)
        assert body[0] == "PU70,50;"
        assert body[-2] == "PD70,50;"
        assert body[-1] == "PU;"
        assert sum(1 for line in body if line.startswith("PD")) == pen_downs

    def test_near_equal_sides_become_circle(
        self, emitter: PlotterEmitter, sink: MemorySink,
    ) -> None:
        emitter.ellipse(Point2D(50.0, 50.0), 20.0, 20.05, 5.0)
        assert _body(sink) == ["PU50,50;", "CI10,5;", "PU;"]

    def test_near_zero_coordinates_clamped(
        self, config: PlotterConfig, sink: MemorySink,
    ) -> None:
        em = PlotterEmitter(config, _mapper(config, quantize=False))
        em.open(sink)
        em.ellipse(Point2D(0.0, 50.0), 40.0, 20.0, 5.0)
        assert "PD0.01,40;" in sink.lines
        assert "PD0.01,60;" in sink.lines


# ---------------------------------------------------------------------------
# Arcs
# ---------------------------------------------------------------------------


class TestArc:
    def _arc(self, emitter: PlotterEmitter, mode: ArcMode) -> None:
        emitter.arc(
            Point2D(50.0, 50.0), 20.0, 20.0, 0.0, 3.141592653589793 / 2, mode, 5.0,
        )

    def test_open(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        self._arc(emitter, ArcMode.OPEN)
        assert _body(sink) == ["SP1;", "PU60,50;", "PD;AA50,50,-90,5;", "PU;"]

    def test_chord(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        self._arc(emitter, ArcMode.CHORD)
        assert _body(sink) == [
            "SP1;", "PU60,50;", "PD;AA50,50,-90,5;", "PD60,50;", "PU;",
        ]

    def test_pie(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        self._arc(emitter, ArcMode.PIE)
        assert _body(sink) == [
            "SP1;", "PU60,50;", "PD;AA50,50,-90,5;", "PD50,50;", "PD60,50;", "PU;",
        ]

    def test_elliptical_arc_writes_nothing(
        self,
        emitter: PlotterEmitter,
        sink: MemorySink,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING):
            emitter.arc(Point2D(50.0, 50.0), 20.0, 30.0, 0.0, 1.0, ArcMode.OPEN, 5.0)
        assert _body(sink) == []
        assert "elliptical" in caplog.text


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


class TestText:
    def test_label(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.text("hello", Point2D(10.0, 10.0))
        assert _body(sink) == ["PU10,90;", "DT\x03;", "LBhello\x03;"]

    def test_size(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.text_size(20.0)
        assert _body(sink) == ["SI1.4778,2.1;"]


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


def _buffer(*points: tuple[float, float]) -> ShapeVertexBuffer:
    buf = ShapeVertexBuffer(2)
    for x, y in points:
        buf.append(Point2D(x, y))
    return buf


class TestFlushShape:
    def test_open_polyline(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.flush_shape(_buffer((0, 0), (10, 0), (10, 10)), closed=False)
        assert _body(sink) == ["PU0,100;", "PD10,100;", "PD10,90;", "PU;"]

    def test_closed_polyline(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.flush_shape(_buffer((0, 0), (10, 0), (10, 10)), closed=True)
        assert _body(sink) == [
            "PU0,100;", "PD10,100;", "PD10,90;", "PD0,100;", "PU;",
        ]

    def test_single_vertex(self, emitter: PlotterEmitter, sink: MemorySink) -> None:
        emitter.flush_shape(_buffer((5, 5)), closed=False)
        assert _body(sink) == ["PU5,95;", "PU;"]

    def test_buffer_released_on_closed_session(
        self, config: PlotterConfig, sink: MemorySink,
    ) -> None:
        em = PlotterEmitter(config, _mapper(config))
        buf = _buffer((1, 1), (2, 2))
        em.flush_shape(buf, closed=True)
        assert sink.lines == []
        assert not buf.is_active


# ---------------------------------------------------------------------------
# Numeric formatting
# ---------------------------------------------------------------------------


class TestFormatNumber:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (3, "3"),
            (-12, "-12"),
            (2.5, "2.5"),
            (1.0, "1"),
            (0.1 + 0.2, "0.3"),
            (-0.00001, "0"),
            (1e-7, "0"),
            (1234567.0, "1234567"),
            (1e21, "1000000000000000000000"),
        ],
    )
    def test_values(self, value: float, expected: str) -> None:
        assert format_number(value) == expected

    def test_precision(self) -> None:
        assert format_number(1.23456, 2) == "1.23"
        assert format_number(7.9, 0) == "8"


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class TestTextSink:
    def test_lines_and_ownership(self) -> None:
        stream = io.StringIO()
        sink = TextSink(stream, close_stream=False)
        sink.write_line("IN;SP1;")
        sink.write_line("PU;")
        sink.close()
        assert stream.getvalue() == "IN;SP1;\nPU;\n"
        assert not stream.closed

    def test_memory_sink_getvalue(self) -> None:
        sink = MemorySink()
        sink.write_line("PU;")
        assert sink.getvalue() == "PU;\n"
