"""Core module exports."""

from modelsync.core.errors import (
    ConfigError,
    ErrorCode,
    InternalError,
    ModelSyncError,
    SchemaError,
    SourceError,
)
from modelsync.core.logging import configure_logging, get_logger, run_context
from modelsync.core.progress import spinner, status

__all__ = [
    # Errors
    "ModelSyncError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "SchemaError",
    "SourceError",
    # Logging
    "configure_logging",
    "get_logger",
    "run_context",
    # Progress
    "spinner",
    "status",
]
