"""Logging setup for plot sessions and scripts.

Every module logs through ``logging.getLogger(__name__)``; this module
only decides where records go and how they look.

Public API:
    setup_logging(log_level="INFO", log_file=None, json=False, context=None)
    get_logger(name)
    push_context(session="out.hpgl")
    pop_context(keys=["session"])
    route_warnings()

Line formats::

    human  2026-10-19T13:45:12.345Z | WARNING  | session=out.hpgl | select_pen() ...
    json   {"t": "2026-10-19T13:45:12.345+00:00", "lvl": "WARNING", "session": "out.hpgl", "msg": "..."}

Context fields live in a ``contextvars.ContextVar`` and are attached to
every formatted record.  ``setup_logging`` may be called repeatedly; it
replaces only the handlers it installed itself.
"""

import contextvars
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

_context: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar(
    "hpgl_plotter_log_context", default={}
)

# Marks handlers owned by setup_logging().
_OWNED_ATTR = "_hpgl_plotter_owned"

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"


class ContextFormatter(logging.Formatter):
    """Render records as human-readable or JSON lines with context fields.

    Parameters
    ----------
    fmt_mode : str
        ``"human"`` or ``"json"``.
    use_color : bool
        Colour the level name; ignored unless stderr is a terminal.
    tz : str
        ``"UTC"`` or ``"local"`` timestamps.
    """

    def __init__(
        self,
        fmt_mode: str = "human",
        use_color: bool = True,
        tz: str = "UTC",
    ):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"fmt_mode must be 'human' or 'json', got {fmt_mode!r}")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()
        self.tz = tz

    def format(self, record: logging.LogRecord) -> str:
        tzinfo = timezone.utc if self.tz == "UTC" else None
        ts = datetime.fromtimestamp(record.created, tz=tzinfo)
        fields = dict(_context.get())
        exc = self.formatException(record.exc_info) if record.exc_info else None

        if self.fmt_mode == "json":
            payload: Dict[str, Any] = {
                "t": ts.isoformat(),
                "lvl": record.levelname,
                "name": record.name,
                "pid": os.getpid(),
            }
            payload.update(fields)
            payload["msg"] = record.getMessage()
            if exc:
                payload["exc"] = exc
            return json.dumps(payload, default=str)

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{LEVEL_COLORS.get(record.levelname, '')}{level}{_RESET}"
        columns = [ts.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z", level]
        if fields:
            columns.append(" ".join(f"{k}={v}" for k, v in fields.items()))
        columns.append(record.getMessage())
        line = " | ".join(columns)
        if exc:
            line = f"{line}\n{exc}"
        return line


def _own(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED_ATTR, True)
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    tz: str = "UTC",
    capture_warnings: bool = True,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Configure the root logger.

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL".
    log_file : str, optional
        Also write records to this file; parent directories are created.
    json : bool
        JSON lines in the log file instead of the human format.
    color : bool
        ANSI colours on the console handler.
    to_stderr : bool
        Attach a console handler on stderr.
    tz : str
        "UTC" (default) or "local" timestamps.
    capture_warnings : bool
        Route ``warnings.warn`` through logging.
    context : dict, optional
        Initial context fields, e.g. ``{"session": "out.hpgl"}``.

    Returns
    -------
    dict
        ``{"handlers": [...]}`` listing the handlers installed by this call.
    """
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _OWNED_ATTR, False)]:
        root.removeHandler(handler)
        handler.close()

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    root.setLevel(level)

    handlers: List[logging.Handler] = []
    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", color, tz))
        handlers.append(_own(console))
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(
            ContextFormatter("json" if json else "human", use_color=False, tz=tz)
        )
        handlers.append(_own(file_handler))

    for handler in handlers:
        root.addHandler(handler)
    if context:
        push_context(**context)
    if capture_warnings:
        route_warnings()
    return {"handlers": handlers}


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def push_context(**fields: Any) -> None:
    """Add or overwrite context fields for subsequent records."""
    _context.set({**_context.get(), **fields})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Drop the named context fields, or all of them when *keys* is None."""
    if keys is None:
        _context.set({})
        return
    _context.set({k: v for k, v in _context.get().items() if k not in keys})


def route_warnings() -> None:
    """Send ``warnings.warn`` output to the ``py.warnings`` logger."""
    logging.captureWarnings(True)
    logging.getLogger("py.warnings").setLevel(logging.WARNING)
