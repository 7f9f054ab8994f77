"""Config module exports."""

from cargocov.config.loader import load_config
from cargocov.config.models import (
    BuildConfig,
    CargoCovConfig,
    LoggingConfig,
    PathsConfig,
    RunConfig,
    ToolsConfig,
)

__all__ = [
    "load_config",
    "BuildConfig",
    "CargoCovConfig",
    "LoggingConfig",
    "PathsConfig",
    "RunConfig",
    "ToolsConfig",
]
