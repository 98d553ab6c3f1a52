"""Run-scoped state shared by the synchronization phases."""

from __future__ import annotations

from dataclasses import dataclass, field

from modelsync.config.models import GenerationConfig, LayoutConfig, ModelSyncConfig
from modelsync.core.concurrency import InsertOnlyMap, InsertOnlySet
from modelsync.naming.resolver import NameResolver
from modelsync.reconcile.models import NameIndex
from modelsync.reconcile.registry import RegistryEntry
from modelsync.schema.models import Table
from modelsync.source.models import SourceFile, SourceTree
from modelsync.source.ops import SourceWriter


@dataclass(frozen=True)
class SyncOptions:
    """Per-call overrides for one run.

    ``None`` keeps the value from the loaded configuration.
    """

    dry_run: bool = False
    decorate_messages: bool = False
    scan_table_suffixes: bool | None = None
    dump_schema: bool | None = None
    max_workers: int | None = None


@dataclass
class RunContext:
    """State of one run, created fresh and passed to every phase.

    The table<->class maps are filled at the end of loading and only grow
    during synthesis. All maps written by workers are insert-only.
    """

    config: ModelSyncConfig
    options: SyncOptions
    tables: dict[str, Table]
    tree: SourceTree
    resolver: NameResolver
    writer: SourceWriter
    uniform_identity: bool = False
    # registry DbSet names found on disk: model (lower) -> set name
    db_sets: dict[str, str] = field(default_factory=dict)

    # table (lower) -> class name
    table_classes: InsertOnlyMap[str, str] = field(default_factory=InsertOnlyMap)
    # class (lower) -> table
    class_tables: InsertOnlyMap[str, Table] = field(default_factory=InsertOnlyMap)
    # class (lower) -> {column (lower): property name}
    class_columns: InsertOnlyMap[str, dict[str, str]] = field(default_factory=InsertOnlyMap)
    # class (lower) -> model file synthesized this run
    new_models: InsertOnlyMap[str, SourceFile] = field(default_factory=InsertOnlyMap)
    # class (lower) -> wrapper file synthesized this run
    new_daos: InsertOnlyMap[str, SourceFile] = field(default_factory=InsertOnlyMap)
    # tables (lower) with a valid generated artifact this run
    synced: InsertOnlySet[str] = field(default_factory=InsertOnlySet)
    # table (lower) -> registry entry, only for tables patched successfully
    reconciled: InsertOnlyMap[str, RegistryEntry] = field(default_factory=InsertOnlyMap)

    @property
    def layout(self) -> LayoutConfig:
        return self.config.layout

    @property
    def generation(self) -> GenerationConfig:
        return self.config.generation

    def name_index(self) -> NameIndex:
        """Snapshot of the maps for cross-class lookups."""
        return NameIndex(
            classes=self.table_classes.snapshot(),
            columns=self.class_columns.snapshot(),
        )

    def model_file(self, class_name: str) -> SourceFile | None:
        return self.new_models.get(class_name.lower()) or self.tree.model(class_name)

    def dao_file(self, class_name: str) -> SourceFile | None:
        return self.new_daos.get(class_name.lower()) or self.tree.dao(class_name)

    def mapped_classes(self) -> list[tuple[str, Table]]:
        """(class name, table) for every mapped class, ordered by table name."""
        pairs = [
            (self.table_classes.get(key) or "", table)
            for key, table in sorted(self.tables.items())
            if key in self.table_classes
        ]
        return [(name, table) for name, table in pairs if name]
