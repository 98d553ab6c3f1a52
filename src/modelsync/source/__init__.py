"""Source tree loading and writing."""

from modelsync.source.models import FileDelta, SourceFile, SourceTree
from modelsync.source.ops import SourceOps, SourceWriter, discover_root_namespace

__all__ = [
    "FileDelta",
    "SourceFile",
    "SourceOps",
    "SourceTree",
    "SourceWriter",
    "discover_root_namespace",
]
