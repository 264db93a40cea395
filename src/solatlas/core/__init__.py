"""Core module exports."""

from solatlas.core.errors import (
    ConfigError,
    ErrorCode,
    QueryError,
    ScanError,
    SolAtlasError,
)
from solatlas.core.logging import (
    clear_scan_id,
    configure_logging,
    get_logger,
    get_scan_id,
    set_scan_id,
)
from solatlas.core.progress import spinner, status

__all__ = [
    # Errors
    "SolAtlasError",
    "ConfigError",
    "ErrorCode",
    "QueryError",
    "ScanError",
    # Logging
    "clear_scan_id",
    "configure_logging",
    "get_logger",
    "get_scan_id",
    "set_scan_id",
    # Progress
    "spinner",
    "status",
]
