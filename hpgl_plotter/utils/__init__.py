"""Shared helpers with no dependency on the rest of the package.

    fs              YAML loading, directory creation
    logging_config  root logger setup and per-session context fields

Nothing in utils/ imports from geometry, shapes, hpgl or surface.
"""

from . import fs
from . import logging_config
from .logging_config import get_logger, pop_context, push_context, setup_logging

__all__ = [
    "fs",
    "logging_config",
    "get_logger",
    "pop_context",
    "push_context",
    "setup_logging",
]
