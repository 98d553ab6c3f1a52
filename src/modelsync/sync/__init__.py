"""Synchronization orchestration."""

from modelsync.sync.context import RunContext, SyncOptions
from modelsync.sync.ops import SyncError, SyncResult, SyncStep, SyncSummary, synchronize

__all__ = [
    "RunContext",
    "SyncError",
    "SyncOptions",
    "SyncResult",
    "SyncStep",
    "SyncSummary",
    "synchronize",
]
