"""Synchronization run: schema + source tree in, reconciled source tree out.

Phases, each joined before the next starts:

1. Load: connect, then introspect the schema and load the source tree
   concurrently; read registry set names; infer the identity convention;
   map existing classes to tables.
2. Probe: find which mapped classes reconcile cleanly and record their
   column -> property names for cross-class lookups.
3. Synthesize: generate a model and a wrapper for every unmapped table.
4. Patch: reconcile every mapped model and its wrapper, then write them.
5. Sweep: delete generated model, wrapper and schema files nothing claims
   anymore. A model is generated when the registry or a wrapper names it.
6. Finalize: rebuild the registry and dump per-table DDL in parallel.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, cast

import structlog

from modelsync.config.loader import load_config
from modelsync.config.models import ModelSyncConfig
from modelsync.core.concurrency import PhaseRunner
from modelsync.core.errors import ConfigError, InternalError
from modelsync.core.logging import run_context
from modelsync.core.progress import is_decorated, set_decorated
from modelsync.csharp.factory import model_file
from modelsync.naming.inflector import pluralize
from modelsync.naming.resolver import NameResolver, property_name_for
from modelsync.reconcile.dao import DaoSpec, IdentityKey, create_dao, reconcile_dao
from modelsync.reconcile.model_rewriter import ModelRewriter
from modelsync.reconcile.models import ModelRewrite, NameIndex
from modelsync.reconcile.properties import expected_type
from modelsync.reconcile.registry import (
    REGISTRY_USINGS,
    RegistryEntry,
    create_registry,
    entity_mapping,
    read_db_sets,
    reconcile_registry,
)
from modelsync.schema.dump import render_table_script, schema_file_path
from modelsync.schema.models import Table
from modelsync.schema.service import SchemaService
from modelsync.schema.types import csharp_type
from modelsync.source.models import FileDelta, SourceFile, SourceTree
from modelsync.source.ops import SourceOps, SourceWriter
from modelsync.sync.context import RunContext, SyncOptions

logger = structlog.get_logger()


class SyncStep(str, Enum):
    """Step of the run an error is attributed to."""

    LOAD_CONFIG = "load_config"
    CONNECT_DB = "connect_db"
    ANALYZE_DB = "analyze_db"
    LOAD_CODE = "load_code"
    MAP_SETS = "map_sets"
    INFER_CONFIG = "infer_config"
    UPDATE_CREATE_MODELS = "update_create_models"
    UPDATE_CREATE_DAOS = "update_create_daos"
    DELETE_MODELS = "delete_models"
    DELETE_DAOS = "delete_daos"
    UPDATE_SETS = "update_sets"
    DUMP_SCHEMA = "dump_schema"


@dataclass(frozen=True)
class SyncError:
    """A failure attributed to one step, and to one table or class if local."""

    step: SyncStep
    message: str
    cause: BaseException | None = None
    target: str | None = None

    @property
    def raw_cause(self) -> str:
        if self.cause is None:
            return ""
        return f"{type(self.cause).__name__}: {self.cause}"


@dataclass
class SyncSummary:
    """Counts of what a run changed, by artifact kind."""

    models_created: int = 0
    models_updated: int = 0
    models_deleted: int = 0
    daos_created: int = 0
    daos_updated: int = 0
    daos_deleted: int = 0
    registry_updated: bool = False
    schema_written: int = 0
    schema_deleted: int = 0
    failures: int = 0
    elapsed_ms: int = 0


@dataclass
class SyncResult:
    """Outcome of ``synchronize``.

    ``error`` is set only when the run aborted. Failures local to one
    table or artifact are listed in ``failures`` and do not abort the run.
    """

    run_id: str
    error: SyncError | None = None
    failures: list[SyncError] = field(default_factory=list)
    deltas: list[FileDelta] = field(default_factory=list)
    summary: SyncSummary = field(default_factory=SyncSummary)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class _StepFailure(Exception):
    def __init__(self, step: SyncStep, cause: BaseException, target: str | None = None) -> None:
        super().__init__(str(cause))
        self.step = step
        self.cause = cause
        self.target = target

    def to_error(self) -> SyncError:
        message = getattr(self.cause, "message", None) or str(self.cause) or repr(self.cause)
        return SyncError(step=self.step, message=message, cause=self.cause, target=self.target)


def _guarded(step: SyncStep, fn: Callable[[], Any], target: str | None = None) -> Any:
    """Run ``fn``, attributing any exception to ``step``."""
    try:
        return fn()
    except _StepFailure:
        raise
    except Exception as e:
        raise _StepFailure(step, e, target) from e


def synchronize(
    connection: str,
    database: str | None,
    project_path: str | Path,
    options: SyncOptions | None = None,
    *,
    config: ModelSyncConfig | None = None,
) -> SyncResult:
    """Bring the C# project at ``project_path`` in line with the database.

    Never raises for connectivity, configuration or loading problems: they
    come back as ``SyncResult.error`` naming the failing step.
    """
    options = options or SyncOptions()
    root = Path(project_path)
    decorated = is_decorated()
    if options.decorate_messages:
        set_decorated(True)
    try:
        with run_context(root) as run_id:
            return _run(connection, database, root, options, config, run_id)
    finally:
        set_decorated(decorated)


def _run(
    connection: str,
    database: str | None,
    root: Path,
    options: SyncOptions,
    config: ModelSyncConfig | None,
    run_id: str,
) -> SyncResult:
    started = time.perf_counter()
    writer = SourceWriter(root, dry_run=options.dry_run)
    result = SyncResult(run_id=run_id, dry_run=options.dry_run)
    service: SchemaService | None = None
    tree: SourceTree | None = None

    logger.info("sync_started", database=database, dry_run=options.dry_run)
    try:
        try:
            cfg = config or load_config(root if root.is_dir() else None)
        except ConfigError as e:
            raise _StepFailure(SyncStep.LOAD_CONFIG, e) from e

        max_workers = options.max_workers or cfg.concurrency.max_workers
        service = SchemaService(connection, database)
        with PhaseRunner(max_workers=max_workers) as runner:
            ctx = _load(service, root, cfg, options, writer, runner)
            tree = ctx.tree
            _probe(ctx, runner)
            _synthesize(ctx, runner, result.failures)
            _patch(ctx, runner, result.failures)
            _sweep(ctx, runner, result.failures)
            _finalize(ctx, service, runner, result.failures)
    except _StepFailure as e:
        result.error = e.to_error()
        logger.error("sync_failed", step=result.error.step.value, error=result.error.message)
    finally:
        if service is not None:
            service.dispose()

    result.deltas = writer.deltas
    result.summary = _summarize(result, tree, started)
    if result.ok:
        logger.info(
            "sync_finished",
            files=len(result.deltas),
            failures=len(result.failures),
            elapsed_ms=result.summary.elapsed_ms,
        )
    return result


# Phase 1


def _load(
    service: SchemaService,
    root: Path,
    cfg: ModelSyncConfig,
    options: SyncOptions,
    writer: SourceWriter,
    runner: PhaseRunner,
) -> RunContext:
    error = service.test_connection()
    if error is not None:
        raise _StepFailure(SyncStep.CONNECT_DB, error)

    source_ops = SourceOps(root, cfg.layout)
    loaded = runner.run_concurrently(
        lambda: _guarded(SyncStep.ANALYZE_DB, service.get_schema),
        lambda: _guarded(SyncStep.LOAD_CODE, source_ops.load),
    )
    tables = cast(dict[str, Table], loaded[0])
    tree = cast(SourceTree, loaded[1])

    scan = options.scan_table_suffixes
    if scan is None:
        scan = cfg.generation.scan_table_suffixes
    ctx = RunContext(
        config=cfg,
        options=options,
        tables=tables,
        tree=tree,
        resolver=NameResolver(tables, scan_suffixes=scan),
        writer=writer,
    )

    registry = tree.registry
    if registry is not None:
        ctx.db_sets = _guarded(
            SyncStep.MAP_SETS, lambda: read_db_sets(registry.unit, cfg.layout.registry_class)
        )
    ctx.uniform_identity = _guarded(SyncStep.INFER_CONFIG, lambda: tree.sentinel_present)
    logger.info(
        "convention_inferred", uniform_identity=ctx.uniform_identity, db_sets=len(ctx.db_sets)
    )

    _map_classes(ctx)
    return ctx


def _map_classes(ctx: RunContext) -> None:
    """Claim a table for every existing model class that resolves to one."""
    protected = {name.lower() for name in ctx.layout.protected_files}
    for key, source in sorted(ctx.tree.models.items()):
        name = source.class_name
        if name is None or source.path.name.lower() in protected:
            continue
        table = ctx.resolver.resolve_table(name)
        if table is None:
            logger.warning("class_unresolved", class_name=name, path=str(source.path))
            continue
        if not ctx.table_classes.try_add(table.name.lower(), name):
            logger.warning(
                "table_already_mapped",
                table=table.name,
                class_name=name,
                mapped_to=ctx.table_classes.get(table.name.lower()),
            )
            continue
        ctx.class_tables.try_add(key, table)

    logger.info("classes_mapped", mapped=len(ctx.table_classes), tables=len(ctx.tables))


# Phase 2


def _probe(ctx: RunContext, runner: PhaseRunner) -> None:
    """Read-only pass: mark classes synchronized and publish their names."""
    index = ctx.name_index()

    def probe(pair: tuple[str, Table]) -> bool:
        name, table = pair
        source = ctx.model_file(name)
        if source is None:
            return False
        # tables synthesized later are not in the index yet; the patch pass reports misses
        rewriter = _rewriter(ctx, name, table, index, report_unresolved=False)
        rewrite = rewriter.rewrite(source.unit)
        if not rewrite.class_found:
            return False
        ctx.synced.try_add(table.name.lower())
        ctx.class_columns.try_add(name.lower(), rewrite.properties)
        return rewrite.changed

    outcomes = runner.map("probe", probe, ctx.mapped_classes())
    for outcome in outcomes:
        if not outcome.ok:
            logger.warning(
                "probe_failed", class_name=outcome.item[0], error=str(outcome.error)
            )
    pending = sum(1 for o in outcomes if o.ok and o.result)
    logger.info("probe_done", classes=len(outcomes), pending=pending)


def _rewriter(
    ctx: RunContext,
    name: str,
    table: Table,
    index: NameIndex,
    *,
    report_unresolved: bool = True,
) -> ModelRewriter:
    return ModelRewriter(
        class_name=name,
        table=table,
        index=index,
        report_unresolved=report_unresolved,
        column_defaults={k.lower(): v for k, v in ctx.generation.column_defaults.items()},
        annotations_namespace=ctx.generation.annotations_namespace,
    )


# Phase 3


def _synthesize(ctx: RunContext, runner: PhaseRunner, failures: list[SyncError]) -> None:
    """New model and wrapper sources for tables no class claims."""
    claimed: list[tuple[str, Table]] = []
    for key, table in sorted(ctx.tables.items()):
        if key in ctx.table_classes:
            continue
        name = ctx.resolver.class_name_for(table)
        if ctx.tree.model(name) is not None or not ctx.class_tables.try_add(name.lower(), table):
            logger.warning("class_name_taken", table=table.name, class_name=name)
            continue
        ctx.table_classes.try_add(key, name)
        claimed.append((name, table))

    def synthesize(pair: tuple[str, Table]) -> None:
        name, table = pair
        _guarded(SyncStep.UPDATE_CREATE_MODELS, lambda: _new_model(ctx, name, table), name)
        _guarded(SyncStep.UPDATE_CREATE_DAOS, lambda: _new_dao(ctx, name, table), name)

    _collect(runner.map("synthesize", synthesize, claimed), failures)
    logger.info("models_synthesized", count=len(ctx.new_models))


def _new_model(ctx: RunContext, name: str, table: Table) -> None:
    columns = table.ordered()
    properties = [(expected_type(c), property_name_for(c.name)) for c in columns]
    bases: list[str] = []
    identity = table.identity_column
    if ctx.uniform_identity and identity is not None:
        bases.append(f"{ctx.layout.identity_interface}<{csharp_type(identity.sql_type)}>")
    text = model_file(ctx.tree.models_namespace, name, properties, bases=bases)
    path = ctx.tree.models_dir / f"{name}.cs"
    ctx.new_models.try_add(name.lower(), SourceFile.from_text(path, text))
    names = {c.name.lower(): prop for c, (_, prop) in zip(columns, properties, strict=True)}
    ctx.class_columns.try_add(name.lower(), names)
    logger.debug("model_synthesized", class_name=name, table=table.name)


def _new_dao(ctx: RunContext, name: str, table: Table) -> None:
    dao_name = f"{name}{ctx.layout.dao_suffix}"
    if ctx.tree.dao(dao_name) is not None:
        return
    identity = table.identity_column
    key = (
        IdentityKey(property_name_for(identity.name), csharp_type(identity.sql_type))
        if identity is not None
        else None
    )
    spec = _dao_spec(ctx, name, key, ())
    unit = create_dao(spec, ctx.tree.dao_namespace)
    path = ctx.tree.dao_dir / f"{dao_name}.cs"
    ctx.new_daos.try_add(dao_name.lower(), SourceFile(path=path, text=unit.render(), unit=unit))


def _set_name(ctx: RunContext, name: str) -> str:
    return ctx.db_sets.get(name.lower()) or pluralize(name) or f"{name}s"


def _dao_spec(
    ctx: RunContext, name: str, identity: IdentityKey | None, custom_usings: tuple[str, ...]
) -> DaoSpec:
    usings = [ns for ns in (ctx.tree.models_namespace, *custom_usings) if ns]
    usings = [ns for ns in usings if ns != ctx.tree.dao_namespace]
    return DaoSpec(
        class_name=f"{name}{ctx.layout.dao_suffix}",
        model=name,
        set_name=_set_name(ctx, name),
        base_class=ctx.layout.dao_base_class,
        identity=identity,
        generate_get_where_id=not ctx.uniform_identity,
        usings=tuple(usings),
    )


# Phase 4


def _patch(ctx: RunContext, runner: PhaseRunner, failures: list[SyncError]) -> None:
    """Authoritative pass over every mapped class; the only phase that writes sources."""
    index = ctx.name_index()

    def patch(pair: tuple[str, Table]) -> None:
        name, table = pair
        rewrite = _guarded(
            SyncStep.UPDATE_CREATE_MODELS, lambda: _patch_model(ctx, name, table, index), name
        )
        _guarded(SyncStep.UPDATE_CREATE_DAOS, lambda: _patch_dao(ctx, name, table, rewrite), name)
        entry = RegistryEntry(
            model=name,
            set_name=_set_name(ctx, name),
            mapping=entity_mapping(name, table, rewrite.infos),
        )
        ctx.reconciled.try_add(table.name.lower(), entry)

    _collect(runner.map("patch", patch, ctx.mapped_classes()), failures)
    logger.info("models_patched", reconciled=len(ctx.reconciled))


def _patch_model(ctx: RunContext, name: str, table: Table, index: NameIndex) -> ModelRewrite:
    source = ctx.model_file(name)
    if source is None:
        raise InternalError.unexpected("mapped class has no source", class_name=name)
    rewrite = _rewriter(ctx, name, table, index).rewrite(source.unit)
    if not rewrite.class_found:
        raise InternalError.unexpected("class not found in its file", class_name=name)
    ctx.writer.write(source.path, rewrite.unit.render(), bom=source.bom)
    ctx.synced.try_add(table.name.lower())
    return rewrite


def _patch_dao(ctx: RunContext, name: str, table: Table, rewrite: ModelRewrite) -> None:
    identity: IdentityKey | None = None
    column = table.identity_column
    if column is not None:
        prop = rewrite.properties.get(column.name.lower())
        info = next((i for i in rewrite.infos if i.name == prop), None)
        if info is not None:
            identity = IdentityKey(info.name, info.type_text.rstrip("?").strip())

    spec = _dao_spec(ctx, name, identity, rewrite.custom_usings)
    source = ctx.dao_file(spec.class_name)
    if source is None:
        unit = create_dao(spec, ctx.tree.dao_namespace)
        ctx.writer.write(ctx.tree.dao_dir / f"{spec.class_name}.cs", unit.render())
        return
    unit = reconcile_dao(source.unit, spec)
    ctx.writer.write(source.path, unit.render(), bom=source.bom)


# Phase 5


def _wrapped_model(source: SourceFile, base_class: str) -> str | None:
    """Model named by a wrapper's ``DaoBase<Model>`` base, if it derives from one."""
    cls = source.primary_class
    if cls is None:
        return None
    for base in cls.bases:
        head, sep, rest = "".join(base.split()).partition("<")
        if sep and rest.endswith(">") and head.rsplit(".", 1)[-1] == base_class:
            return rest[:-1].rsplit(".", 1)[-1]
    return None


def _owned_model(ctx: RunContext, key: str) -> bool:
    """A model is generated when the registry lists it or a wrapper wraps it."""
    if key in ctx.db_sets:
        return True
    dao = ctx.tree.dao(f"{key}{ctx.layout.dao_suffix}")
    if dao is None:
        return False
    model = _wrapped_model(dao, ctx.layout.dao_base_class)
    return model is not None and model.lower() == key


def _sweep(ctx: RunContext, runner: PhaseRunner, failures: list[SyncError]) -> None:
    """Delete generated files whose table did not synchronize this run.

    Hand-written classes in the same directories are left alone.
    """
    protected = {name.lower() for name in ctx.layout.protected_files}
    doomed: list[tuple[SyncStep, Path]] = []

    for key, source in sorted(ctx.tree.models.items()):
        if source.path.name.lower() in protected:
            continue
        table = ctx.class_tables.get(key)
        if table is not None and table.name.lower() in ctx.synced:
            continue
        if _owned_model(ctx, key):
            doomed.append((SyncStep.DELETE_MODELS, source.path))
        else:
            logger.debug("unowned_class_kept", class_name=source.class_name)

    suffix = ctx.layout.dao_suffix
    for source in sorted(ctx.tree.daos.values(), key=lambda s: s.path):
        name = source.class_name or ""
        if source.path.name.lower() in protected or not name.endswith(suffix):
            continue
        model = _wrapped_model(source, ctx.layout.dao_base_class)
        if model is None:
            continue
        table = ctx.class_tables.get(model.lower())
        if table is None or table.name.lower() not in ctx.synced:
            doomed.append((SyncStep.DELETE_DAOS, source.path))

    if _dump_enabled(ctx) and ctx.tree.schema_dir.is_dir():
        for path in sorted(ctx.tree.schema_dir.glob("*.sql")):
            if path.stem.lower() not in ctx.table_classes:
                doomed.append((SyncStep.DUMP_SCHEMA, path))

    def delete(item: tuple[SyncStep, Path]) -> None:
        step, path = item
        _guarded(step, lambda: ctx.writer.delete(path), path.name)
        logger.info("artifact_swept", path=str(path))

    _collect(runner.map("sweep", delete, doomed), failures)


# Phase 6


def _finalize(
    ctx: RunContext, service: SchemaService, runner: PhaseRunner, failures: list[SyncError]
) -> None:
    jobs: list[Callable[[], None]] = [
        lambda: _guarded(
            SyncStep.UPDATE_SETS, lambda: _write_registry(ctx), ctx.layout.registry_class
        )
    ]
    if _dump_enabled(ctx):
        for key, table in sorted(ctx.tables.items()):
            if key in ctx.table_classes:
                jobs.append(_dump_job(ctx, service, table))

    _collect(runner.map("finalize", lambda job: job(), jobs), failures)


def _dump_enabled(ctx: RunContext) -> bool:
    if ctx.options.dump_schema is not None:
        return ctx.options.dump_schema
    return ctx.generation.dump_schema


def _dump_job(ctx: RunContext, service: SchemaService, table: Table) -> Callable[[], None]:
    def write() -> None:
        script = render_table_script(service, table.name)
        if script is None:
            return
        ctx.writer.write(schema_file_path(ctx.tree.schema_dir, table.name), script)

    def dump() -> None:
        _guarded(SyncStep.DUMP_SCHEMA, write, table.name)

    return dump


def _write_registry(ctx: RunContext) -> None:
    """Rebuild the registry from the tables patched successfully."""
    class_name = ctx.layout.registry_class
    entries = [entry for _, entry in sorted(ctx.reconciled.snapshot().items())]
    usings = list(REGISTRY_USINGS)
    if ctx.tree.models_namespace and ctx.tree.models_namespace != ctx.tree.registry_namespace:
        usings.append(ctx.tree.models_namespace)

    source = ctx.tree.registry
    if source is None:
        unit = create_registry(ctx.tree.registry_namespace, class_name, usings)
        path, bom = ctx.tree.registry_path, False
    else:
        unit, path, bom = source.unit, source.path, source.bom
        if unit.find_class(class_name) is None:
            logger.warning("registry_class_missing", class_name=class_name, path=str(path))
            return

    unit = reconcile_registry(unit, class_name, entries, usings)
    ctx.writer.write(path, unit.render(), bom=bom)
    logger.info("registry_rebuilt", sets=len(entries))


def _collect(outcomes: list[Any], failures: list[SyncError]) -> None:
    for outcome in outcomes:
        if outcome.ok:
            continue
        error = outcome.error
        if isinstance(error, _StepFailure):
            failure = error.to_error()
        else:
            failure = SyncError(
                step=SyncStep.UPDATE_CREATE_MODELS, message=str(error), cause=error
            )
        logger.error(
            "unit_failed",
            step=failure.step.value,
            target=failure.target,
            error=failure.message,
        )
        failures.append(failure)


def _summarize(result: SyncResult, tree: SourceTree | None, started: float) -> SyncSummary:
    summary = SyncSummary(
        failures=len(result.failures),
        elapsed_ms=int((time.perf_counter() - started) * 1000),
    )
    if tree is None:
        return summary

    for delta in result.deltas:
        path = tree.root / delta.path
        if path == tree.registry_path:
            summary.registry_updated = True
        elif path.is_relative_to(tree.schema_dir):
            if delta.action == "deleted":
                summary.schema_deleted += 1
            else:
                summary.schema_written += 1
        else:
            for kind, directory in (("models", tree.models_dir), ("daos", tree.dao_dir)):
                if path.is_relative_to(directory):
                    attr = f"{kind}_{delta.action}"
                    setattr(summary, attr, getattr(summary, attr) + 1)
                    break
    return summary
