"""Filesystem helpers shared by the config loader and file sinks.

Usage::

    from hpgl_plotter.utils import fs
    data = fs.load_yaml("plotter.yaml")
    fs.ensure_dir("outputs/plots")
"""

from pathlib import Path
from typing import Any, Union

import yaml


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create *p* and any missing parents; return it as a ``Path``.

    Raises
    ------
    OSError
        If *p* or one of its parents exists as a regular file, or cannot
        be created.
    """
    path = Path(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_yaml(path: Union[str, Path]) -> Any:
    """Parse one YAML document with ``yaml.safe_load``.

    An empty document yields ``None``.

    Raises
    ------
    FileNotFoundError
        If *path* is not a file.
    yaml.YAMLError
        If the document is malformed; the message names the file.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"YAML file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"{path}: {e}") from e
