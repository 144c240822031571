"""Tests for filesystem and logging helpers.

Tests for hpgl_plotter.utils:
    - ensure_dir creates parents
    - load_yaml parses files and reports missing ones
    - ContextFormatter human and JSON output carry context fields
    - setup_logging is idempotent and writes log files
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest
import yaml

from hpgl_plotter.utils import fs
from hpgl_plotter.utils.logging_config import (
    ContextFormatter,
    get_logger,
    pop_context,
    push_context,
    setup_logging,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def restore_root() -> Iterator[None]:
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.captureWarnings(False)
    pop_context()


def _record(msg: str, level: int = logging.WARNING) -> logging.LogRecord:
    return logging.LogRecord(
        "hpgl_plotter.test", level, __file__, 1, msg, None, None,
    )


# ---------------------------------------------------------------------------
# fs
# ---------------------------------------------------------------------------


class TestFs:
    def test_ensure_dir_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "c"
        assert fs.ensure_dir(target) == target
        assert target.is_dir()
        fs.ensure_dir(target)

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.yaml"
        path.write_text("papers:\n  A4:\n    width_units: 11040\n")
        assert fs.load_yaml(path) == {"papers": {"A4": {"width_units": 11040}}}

    def test_load_yaml_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            fs.load_yaml(tmp_path / "nope.yaml")

    def test_load_yaml_malformed_names_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("papers: [unclosed\n")
        with pytest.raises(yaml.YAMLError, match="bad.yaml"):
            fs.load_yaml(path)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class TestContextFormatter:
    def test_human_includes_context(self, restore_root: None) -> None:
        push_context(session="out.hpgl")
        line = ContextFormatter("human", use_color=False).format(_record("pen up"))
        assert "| WARNING  |" in line
        assert "session=out.hpgl" in line
        assert line.endswith("pen up")

    def test_json_includes_context(self, restore_root: None) -> None:
        push_context(session="out.hpgl", paper="A4")
        data = json.loads(ContextFormatter("json").format(_record("done")))
        assert data["lvl"] == "WARNING"
        assert data["session"] == "out.hpgl"
        assert data["paper"] == "A4"
        assert data["msg"] == "done"

    def test_pop_selected_keys(self, restore_root: None) -> None:
        push_context(session="out.hpgl", paper="A4")
        pop_context(keys=["paper"])
        line = ContextFormatter("human", use_color=False).format(_record("x"))
        assert "session=out.hpgl" in line
        assert "paper=" not in line


# ---------------------------------------------------------------------------
# setup_logging
# ---------------------------------------------------------------------------


class TestSetupLogging:
    def test_idempotent(self, restore_root: None) -> None:
        first = setup_logging("INFO", capture_warnings=False)
        second = setup_logging("DEBUG", capture_warnings=False)
        root = logging.getLogger()
        assert len(second["handlers"]) == 1
        assert first["handlers"][0] not in root.handlers
        assert second["handlers"][0] in root.handlers
        assert root.level == logging.DEBUG

    def test_foreign_handlers_kept(self, restore_root: None) -> None:
        foreign = logging.NullHandler()
        logging.getLogger().addHandler(foreign)
        setup_logging("INFO", capture_warnings=False)
        assert foreign in logging.getLogger().handlers

    def test_unknown_level(self, restore_root: None) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging("LOUD", to_stderr=False, capture_warnings=False)

    def test_json_file(self, restore_root: None, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "plot.log"
        info = setup_logging(
            "INFO",
            str(log_file),
            json=True,
            to_stderr=False,
            context={"session": "drawing.hpgl"},
        )
        get_logger("hpgl_plotter.test").info("opened")
        for handler in info["handlers"]:
            handler.flush()
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["msg"] == "opened"
        assert data["session"] == "drawing.hpgl"
