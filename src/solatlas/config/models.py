"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SOLATLAS__SECTION__KEY)
3. Working-directory YAML (./solatlas.yaml, or an explicit --config path)
4. Global YAML (~/.config/solatlas/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    SOLATLAS__<SECTION>__<KEY>=<VALUE>

Examples:
    SOLATLAS__LOGGING__LEVEL=DEBUG
    SOLATLAS__SCAN__GIT_ROOT_PATH=/srv/git
    SOLATLAS__SCAN__MAX_WORKERS=4
    SOLATLAS__DATABASE__PATH=/var/lib/solatlas/atlas.db
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SOLATLAS__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every parsed file.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ScanConfig(BaseModel):
    """Repository scan configuration.

    Env vars:
        SOLATLAS__SCAN__GIT_ROOT_PATH: Directory whose children are repositories
        SOLATLAS__SCAN__DEFAULT_REMOTE_ROOT_URL: URL prefix for repos without an origin
        SOLATLAS__SCAN__MAX_WORKERS: Parallel file parsing workers
        SOLATLAS__SCAN__MAX_FILE_SIZE_MB: Skip source files larger than this
        SOLATLAS__SCAN__RESOLVE_GROUPINGS: Run the grouping resolver after a scan
    """

    git_root_path: str = Field(
        default=".",
        description="Root directory; each direct child directory is scanned as a repository.",
    )
    default_remote_root_url: str | None = Field(
        default=None,
        description="Prefix used to build a repository URL when it has no origin remote. "
        "The repository folder name is appended.",
    )
    excluded_dirs: list[str] = Field(
        default_factory=lambda: ["bin", "obj", ".git"],
        description="Directory names never descended into while enumerating sources.",
    )
    max_file_size_mb: int = Field(
        default=5,
        description="Skip source files larger than this (MB). Generated files are often huge.",
    )
    max_workers: int = Field(
        default=1,
        description="Threads used to read and parse one project's sources. "
        "Reconciliation itself always runs on the calling thread.",
    )
    resolve_groupings: bool = Field(
        default=True,
        description="Re-run the grouping resolver after every scan.",
    )

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v

    @field_validator("max_file_size_mb")
    @classmethod
    def validate_max_file_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"max_file_size_mb must be positive, got {v}")
        return v


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        SOLATLAS__DATABASE__PATH: SQLite database file
        SOLATLAS__DATABASE__BUSY_TIMEOUT_MS: SQLite busy timeout
        SOLATLAS__DATABASE__MAX_RETRIES: Max retry attempts for locked DB
    """

    path: str = Field(
        default="solatlas.db",
        description="SQLite database file. Relative paths resolve against the working directory.",
    )
    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). How long to wait for locks.",
    )
    max_retries: int = Field(
        default=3,
        description="Max retry attempts for locked database errors.",
    )
    retry_base_delay_sec: float = Field(
        default=0.1,
        description="Base delay between retries (exponential backoff).",
    )


class SolAtlasConfig(BaseModel):
    """Root configuration for SolAtlas.

    All settings can be configured via:
    1. Environment variables: SOLATLAS__SECTION__KEY
    2. YAML config files (working directory or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
