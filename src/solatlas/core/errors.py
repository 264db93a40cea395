"""SolAtlas error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Scan
- 4xxx: Query
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Scan (3xxx)
    SCAN_ROOT_NOT_FOUND = 3001
    SCAN_SOURCE_UNREADABLE = 3002
    SCAN_PARSE_FAILED = 3003
    SCAN_PROJECT_FILE_INVALID = 3004

    # Query (4xxx)
    QUERY_INVALID_SELECTOR = 4001
    QUERY_UNKNOWN_FIELD = 4002
    QUERY_RULE_NOT_FOUND = 4003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(eq=False)
class SolAtlasError(Exception):
    """Base error with structured context for CLI and JSON output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'SCAN_ROOT_NOT_FOUND')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SolAtlasError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class ScanError(SolAtlasError):
    """Errors raised while walking repositories and parsing sources.

    Only ``root_not_found`` escapes a scan; the others are raised by a single
    unit of work (one file, one project) and caught by the coordinator.
    """

    @classmethod
    def root_not_found(cls, path: str) -> "ScanError":
        return cls(
            code=ErrorCode.SCAN_ROOT_NOT_FOUND,
            message=f"Git root directory does not exist: {path}",
            details={"path": path},
        )

    @classmethod
    def source_unreadable(cls, path: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.SCAN_SOURCE_UNREADABLE,
            message=f"Cannot read {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )

    @classmethod
    def parse_failed(cls, path: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.SCAN_PARSE_FAILED,
            message=f"Cannot parse {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def project_file_invalid(cls, path: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.SCAN_PROJECT_FILE_INVALID,
            message=f"Invalid solution or project file {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class QueryError(SolAtlasError):
    """Errors raised by read-side queries and rule management."""

    @classmethod
    def invalid_selector(cls, reason: str) -> "QueryError":
        return cls(
            code=ErrorCode.QUERY_INVALID_SELECTOR,
            message=f"Invalid class selector: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def unknown_field(cls, field: str, allowed: list[str]) -> "QueryError":
        return cls(
            code=ErrorCode.QUERY_UNKNOWN_FIELD,
            message=f"Unknown field '{field}'. Expected one of: {', '.join(allowed)}",
            details={"field": field, "allowed": allowed},
        )

    @classmethod
    def rule_not_found(cls, rule_id: int) -> "QueryError":
        return cls(
            code=ErrorCode.QUERY_RULE_NOT_FOUND,
            message=f"Grouping rule {rule_id} does not exist",
            details={"rule_id": rule_id},
        )
