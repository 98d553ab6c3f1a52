"""Config module exports."""

from modelsync.config.loader import load_config
from modelsync.config.models import (
    ConcurrencyConfig,
    GenerationConfig,
    LayoutConfig,
    LoggingConfig,
    ModelSyncConfig,
)

__all__ = [
    "load_config",
    "ModelSyncConfig",
    "LoggingConfig",
    "LayoutConfig",
    "GenerationConfig",
    "ConcurrencyConfig",
]
