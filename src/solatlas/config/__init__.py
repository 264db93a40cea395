"""Config module exports."""

from solatlas.config.loader import load_config
from solatlas.config.models import (
    DatabaseConfig,
    LoggingConfig,
    ScanConfig,
    SolAtlasConfig,
)

__all__ = [
    "load_config",
    "SolAtlasConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "ScanConfig",
]
