"""Configuration loader for plotter output.

Loads and validates ``plotter.yaml`` into typed, frozen dataclasses.
Paper extents, tessellation defaults, numeric formatting and pen settings
all come from the config -- nothing is hardcoded in the emitter.

Device extents are stored in **plotter units**, physical paper sizes in
**millimetres**.  Conversion to the centimetre fields of the ``SI``
instruction happens only in the emitter.

Usage::

    from hpgl_plotter.configs.loader import load_config
    cfg = load_config()                        # default path
    cfg = load_config("/custom/plotter.yaml")  # explicit path
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from hpgl_plotter.utils.fs import load_yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaperProfile:
    """Named output medium.

    Parameters
    ----------
    name : str
        Profile key, e.g. ``"A4"``.
    width_units, height_units : int
        Device extents in plotter units (landscape).
    width_mm, height_mm : float
        Physical paper size in millimetres.
    """

    name: str
    width_units: int
    height_units: int
    width_mm: float
    height_mm: float


@dataclass(frozen=True)
class MappingConfig:
    """Host-to-device coordinate mapping policy.

    ``paper_scaling`` multiplies host coordinates by
    ``paper.height_units / canvas_height`` before the Y flip; without it
    the flip uses the canvas height and coordinates pass through
    unscaled.  ``quantize_to_integer`` floors mapped values after all
    transform math is done.
    """

    paper_scaling: bool
    quantize_to_integer: bool
    precision: int


@dataclass(frozen=True)
class TessellationConfig:
    """Default curve and circle approximation parameters."""

    chord_angle_deg: float
    curve_detail: int
    bezier_detail: int
    initial_vertex_capacity: int


@dataclass(frozen=True)
class PenConfig:
    """Pen, label and speed settings."""

    default_pen: int
    label_terminator: int
    text_aspect: float
    max_speed: int

    @property
    def terminator_char(self) -> str:
        """Label terminator as a one-character string."""
        return chr(self.label_terminator)


@dataclass(frozen=True)
class OutputConfig:
    """Where and how instruction files are written."""

    default_path: str
    encoding: str


@dataclass(frozen=True)
class PlotterConfig:
    """Complete plotter configuration loaded from ``plotter.yaml``."""

    papers: dict[str, PaperProfile]
    default_paper: str
    mapping: MappingConfig
    tessellation: TessellationConfig
    max_stack_depth: int
    pen: PenConfig
    output: OutputConfig

    # -- Convenience helpers ------------------------------------------------

    def get_paper(self, name: str) -> PaperProfile:
        """Return paper profile or raise ``ConfigError``."""
        if name not in self.papers:
            raise ConfigError(
                f"Unknown paper '{name}'. Available: {list(self.papers.keys())}"
            )
        return self.papers[name]

    @property
    def fallback_paper(self) -> PaperProfile:
        """Profile used when no paper size was selected."""
        return self.get_paper(self.default_paper)


# ---------------------------------------------------------------------------
# Internal parsing helpers
# ---------------------------------------------------------------------------


def _parse_paper(name: str, data: dict[str, Any]) -> PaperProfile:
    """Parse a single paper section from raw YAML dict."""
    return PaperProfile(
        name=str(name),
        width_units=int(data["width_units"]),
        height_units=int(data["height_units"]),
        width_mm=float(data["width_mm"]),
        height_mm=float(data["height_mm"]),
    )


def _validate_config(cfg: PlotterConfig) -> None:
    """Validate value ranges and cross-field consistency.

    Raises
    ------
    ConfigError
        On any invalid combination.
    """
    # -- Papers ---------------------------------------------------------------
    if not cfg.papers:
        raise ConfigError("Configuration must define at least one paper")
    for name, paper in cfg.papers.items():
        if paper.width_units <= 0 or paper.height_units <= 0:
            raise ConfigError(
                f"Paper '{name}' extents must be positive, got "
                f"{paper.width_units}x{paper.height_units}"
            )
        if paper.width_mm <= 0 or paper.height_mm <= 0:
            raise ConfigError(
                f"Paper '{name}' size must be positive, got "
                f"{paper.width_mm}x{paper.height_mm} mm"
            )
        if paper.height_units > paper.width_units:
            logger.warning(
                "Paper '%s' is portrait (%dx%d); drawings assume landscape",
                name,
                paper.width_units,
                paper.height_units,
            )
    if cfg.default_paper not in cfg.papers:
        raise ConfigError(
            f"default_paper '{cfg.default_paper}' not in papers "
            f"{list(cfg.papers.keys())}"
        )

    # -- Mapping --------------------------------------------------------------
    if not 0 <= cfg.mapping.precision <= 12:
        raise ConfigError(
            f"mapping.precision must be in [0, 12], got {cfg.mapping.precision}"
        )

    # -- Tessellation -------------------------------------------------------
    t = cfg.tessellation
    if not 0 < t.chord_angle_deg <= 360:
        raise ConfigError(
            f"chord_angle_deg must be in (0, 360], got {t.chord_angle_deg}"
        )
    if t.curve_detail < 1 or t.bezier_detail < 1:
        raise ConfigError(
            f"Detail counts must be >= 1, got curve={t.curve_detail} "
            f"bezier={t.bezier_detail}"
        )
    if t.initial_vertex_capacity < 1:
        raise ConfigError(
            f"initial_vertex_capacity must be >= 1, "
            f"got {t.initial_vertex_capacity}"
        )

    # -- Transforms -----------------------------------------------------------
    if cfg.max_stack_depth < 1:
        raise ConfigError(
            f"max_stack_depth must be >= 1, got {cfg.max_stack_depth}"
        )

    # -- Pen ------------------------------------------------------------------
    p = cfg.pen
    if p.default_pen < 0:
        raise ConfigError(f"default_pen must be >= 0, got {p.default_pen}")
    if not 0 <= p.label_terminator <= 127:
        raise ConfigError(
            f"label_terminator must be an ASCII code, got {p.label_terminator}"
        )
    if p.text_aspect <= 0:
        raise ConfigError(f"text_aspect must be > 0, got {p.text_aspect}")
    if p.max_speed <= 0:
        raise ConfigError(f"max_speed must be > 0, got {p.max_speed}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_config(data: dict[str, Any]) -> PlotterConfig:
    """Build and validate a ``PlotterConfig`` from a raw mapping.

    Raises
    ------
    ConfigError
        If any field is missing or fails validation.
    """
    try:
        # -- papers -------------------------------------------------------
        papers = {
            str(name): _parse_paper(name, paper)
            for name, paper in data["papers"].items()
        }

        # -- mapping ------------------------------------------------------
        md = data.get("mapping", {})
        mapping = MappingConfig(
            paper_scaling=bool(md.get("paper_scaling", True)),
            quantize_to_integer=bool(md.get("quantize_to_integer", False)),
            precision=int(md.get("precision", 4)),
        )

        # -- tessellation -------------------------------------------------
        td = data.get("tessellation", {})
        tessellation = TessellationConfig(
            chord_angle_deg=float(td.get("chord_angle_deg", 5.0)),
            curve_detail=int(td.get("curve_detail", 20)),
            bezier_detail=int(td.get("bezier_detail", 20)),
            initial_vertex_capacity=int(td.get("initial_vertex_capacity", 512)),
        )

        # -- pen ----------------------------------------------------------
        pd = data.get("pen", {})
        pen = PenConfig(
            default_pen=int(pd.get("default_pen", 1)),
            label_terminator=int(pd.get("label_terminator", 3)),
            text_aspect=float(pd.get("text_aspect", 0.19 / 0.27)),
            max_speed=int(pd.get("max_speed", 127)),
        )

        # -- output -------------------------------------------------------
        od = data.get("output", {})
        output = OutputConfig(
            default_path=str(od.get("default_path", "output.hpgl")),
            encoding=str(od.get("encoding", "ascii")),
        )

        config = PlotterConfig(
            papers=papers,
            default_paper=str(data.get("default_paper", "A4")),
            mapping=mapping,
            tessellation=tessellation,
            max_stack_depth=int(
                data.get("transforms", {}).get("max_stack_depth", 32)
            ),
            pen=pen,
            output=output,
        )

    except KeyError as exc:
        raise ConfigError(
            f"Missing required configuration key: {exc}"
        ) from exc
    except (AttributeError, TypeError, ValueError) as exc:
        raise ConfigError(
            f"Invalid configuration value: {exc}"
        ) from exc

    _validate_config(config)
    return config


def load_config(path: str | Path | None = None) -> PlotterConfig:
    """Load and validate plotter configuration from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to ``plotter.yaml``.  ``None`` loads the default shipped
        alongside this module.

    Returns
    -------
    PlotterConfig
        Fully validated, frozen configuration object.

    Raises
    ------
    ConfigError
        If the file is malformed or any field is missing or fails
        validation.
    FileNotFoundError
        If *path* does not exist.
    """
    if path is None:
        path = Path(__file__).parent / "plotter.yaml"
    else:
        path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration from %s", path)

    try:
        data: dict[str, Any] = load_yaml(path)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed configuration file {path}: {exc}") from exc
    if data is None:
        raise ConfigError(f"Empty configuration file: {path}")

    config = parse_config(data)
    logger.info("Configuration loaded successfully")
    return config
