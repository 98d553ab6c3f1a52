"""ModelSync error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Schema (connectivity and introspection)
- 4xxx: Source tree
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
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Schema (3xxx)
    SCHEMA_CONNECT_FAILED = 3001
    SCHEMA_ANALYZE_FAILED = 3002

    # Source (4xxx)
    SOURCE_NOT_FOUND = 4001
    SOURCE_PARSE_FAILED = 4002
    SOURCE_WRITE_FAILED = 4003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class ModelSyncError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ModelSyncError):
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
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )


class SchemaError(ModelSyncError):
    """Failures talking to the relational schema source."""

    @classmethod
    def connect_failed(cls, reason: str) -> "SchemaError":
        return cls(
            code=ErrorCode.SCHEMA_CONNECT_FAILED,
            message=f"Failed to connect to the database: {reason}",
            retryable=True,
            details={"reason": reason},
        )

    @classmethod
    def analyze_failed(cls, database: str | None, reason: str) -> "SchemaError":
        return cls(
            code=ErrorCode.SCHEMA_ANALYZE_FAILED,
            message=f"Failed to analyze schema of '{database or '<default>'}': {reason}",
            details={"database": database, "reason": reason},
        )


class SourceError(ModelSyncError):
    """Failures reading or writing the generated source tree."""

    @classmethod
    def not_found(cls, path: str) -> "SourceError":
        return cls(
            code=ErrorCode.SOURCE_NOT_FOUND,
            message=f"Project path not found: {path}",
            details={"path": path},
        )

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "SourceError":
        return cls(
            code=ErrorCode.SOURCE_WRITE_FAILED,
            message=f"Failed to write {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class InternalError(ModelSyncError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
