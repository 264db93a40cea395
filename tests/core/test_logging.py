"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import structlog

from solatlas.config.models import LoggingConfig, LogOutputConfig
from solatlas.core.logging import (
    clear_scan_id,
    configure_logging,
    get_logger,
    get_scan_id,
    set_scan_id,
)


class TestScanIdCorrelation:
    """Scan ID context variable tests."""

    def setup_method(self) -> None:
        """Clear scan ID before each test."""
        clear_scan_id()

    def test_given_scan_id_when_set_then_can_retrieve(self) -> None:
        """Scan ID can be set and retrieved."""
        # Given
        scan_id = "scan-123"

        # When
        result = set_scan_id(scan_id)

        # Then
        assert result == scan_id
        assert get_scan_id() == scan_id

    def test_given_no_id_when_set_then_generates_uuid(self) -> None:
        """Set generates a UUID-based ID when none provided."""
        # When
        sid = set_scan_id()

        # Then
        assert len(sid) == 12  # uuid4().hex[:12]

    def test_given_set_id_when_clear_then_removes_id(self) -> None:
        """Clear removes the current scan ID."""
        # Given
        set_scan_id("to-clear")

        # When
        clear_scan_id()

        # Then
        assert get_scan_id() is None


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        clear_scan_id()

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        """LoggingConfig object takes precedence over simple params."""
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When
        configure_logging(config=config, json_format=False, level="ERROR")
        get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()

    def test_given_scan_id_when_log_then_included(self, tmp_path: Path) -> None:
        """Events logged during a scan carry its correlation ID."""
        # Given
        log_file = tmp_path / "scan.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        set_scan_id("abc123")

        # When
        get_logger("scan").info("project_scanned", project="Billing.Api")

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["event"] == "project_scanned"
        assert data["scan_id"] == "abc123"
        assert data["project"] == "Billing.Api"
        assert data["level"] == "info"
        assert "timestamp" in data

    def test_given_multi_output_config_when_configure_then_levels_apply(
        self, tmp_path: Path
    ) -> None:
        """Each output filters at its own level."""
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="console", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content
        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_info_level_when_configure_then_sqlalchemy_quiet(self) -> None:
        """SQL echo stays at WARNING."""
        # When
        configure_logging(level="DEBUG")

        # Then
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
