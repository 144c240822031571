"""
Plotter configuration module.

Loads ``plotter.yaml`` into frozen dataclasses and validates it.
"""

from hpgl_plotter.configs.loader import (
    ConfigError,
    MappingConfig,
    OutputConfig,
    PaperProfile,
    PenConfig,
    PlotterConfig,
    TessellationConfig,
    load_config,
    parse_config,
)

__all__ = [
    "ConfigError",
    "MappingConfig",
    "OutputConfig",
    "PaperProfile",
    "PenConfig",
    "PlotterConfig",
    "TessellationConfig",
    "load_config",
    "parse_config",
]
