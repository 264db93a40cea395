"""Tests for config/models.py module.

Covers:
- LogOutputConfig model
- LoggingConfig model
- ScanConfig model
- DatabaseConfig model
- SolAtlasConfig root model
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from solatlas.config.models import (
    DatabaseConfig,
    LoggingConfig,
    LogOutputConfig,
    ScanConfig,
    SolAtlasConfig,
)


class TestLogOutputConfig:
    """Tests for LogOutputConfig model."""

    def test_defaults(self) -> None:
        config = LogOutputConfig()

        assert config.format == "console"
        assert config.destination == "stderr"
        assert config.level is None

    @pytest.mark.parametrize("destination", ["stderr", "stdout"])
    def test_stream_destinations(self, destination: str) -> None:
        assert LogOutputConfig(destination=destination).destination == destination

    def test_absolute_file_destination(self, tmp_path: pytest.TempPathFactory) -> None:
        path = f"{tmp_path}/atlas.log"

        assert LogOutputConfig(destination=path).destination == path

    def test_relative_file_destination_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LogOutputConfig(destination="logs/atlas.log")

    def test_invalid_format(self) -> None:
        with pytest.raises(ValidationError):
            LogOutputConfig(format="xml")  # type: ignore[arg-type]


class TestLoggingConfig:
    def test_defaults(self) -> None:
        config = LoggingConfig()

        assert config.level == "INFO"
        assert len(config.outputs) == 1

    def test_invalid_level(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(level="TRACE")  # type: ignore[arg-type]


class TestScanConfig:
    """Tests for ScanConfig model."""

    def test_defaults(self) -> None:
        config = ScanConfig()

        assert config.git_root_path == "."
        assert config.default_remote_root_url is None
        assert config.excluded_dirs == ["bin", "obj", ".git"]
        assert config.max_file_size_mb == 5
        assert config.max_workers == 1
        assert config.resolve_groupings is True

    def test_excluded_dirs_not_shared(self) -> None:
        first = ScanConfig()
        first.excluded_dirs.append("node_modules")

        assert ScanConfig().excluded_dirs == ["bin", "obj", ".git"]

    @pytest.mark.parametrize("workers", [0, -1])
    def test_max_workers_must_be_positive(self, workers: int) -> None:
        with pytest.raises(ValidationError, match="max_workers"):
            ScanConfig(max_workers=workers)

    @pytest.mark.parametrize("size", [0, -5])
    def test_max_file_size_must_be_positive(self, size: int) -> None:
        with pytest.raises(ValidationError, match="max_file_size_mb"):
            ScanConfig(max_file_size_mb=size)

    def test_copy_with_overrides(self) -> None:
        config = ScanConfig(git_root_path="/srv/git")

        copy = config.model_copy(update={"resolve_groupings": False})

        assert copy.git_root_path == "/srv/git"
        assert copy.resolve_groupings is False
        assert config.resolve_groupings is True


class TestDatabaseConfig:
    def test_defaults(self) -> None:
        config = DatabaseConfig()

        assert config.path == "solatlas.db"
        assert config.busy_timeout_ms == 30000
        assert config.max_retries == 3
        assert config.retry_base_delay_sec == 0.1


class TestSolAtlasConfig:
    def test_sections(self) -> None:
        config = SolAtlasConfig()

        assert isinstance(config.logging, LoggingConfig)
        assert isinstance(config.scan, ScanConfig)
        assert isinstance(config.database, DatabaseConfig)

    def test_from_dict(self) -> None:
        config = SolAtlasConfig.model_validate(
            {"scan": {"git_root_path": "/srv/git", "max_workers": 4}, "logging": {"level": "DEBUG"}}
        )

        assert config.scan.git_root_path == "/srv/git"
        assert config.scan.max_workers == 4
        assert config.logging.level == "DEBUG"
