"""Aggregate DbContext registry reconciliation."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from modelsync.csharp.factory import EntityMapping, db_set, on_model_creating, registry_file
from modelsync.csharp.parser import parse, parse_members
from modelsync.csharp.syntax import (
    CompilationUnit,
    ConstructorNode,
    Member,
    MethodNode,
    PropertyNode,
)
from modelsync.reconcile.constructors import layout_of
from modelsync.reconcile.models import PropertyInfo
from modelsync.schema.models import Table

_DB_SET = re.compile(r"^DbSet\s*<\s*([\w.]+)\s*>$")

ON_MODEL_CREATING = "OnModelCreating"
REGISTRY_USINGS = ("Microsoft.EntityFrameworkCore",)


@dataclass(frozen=True)
class RegistryEntry:
    model: str
    set_name: str
    mapping: EntityMapping


def _db_set_model(member: Member) -> str | None:
    if not isinstance(member, PropertyNode):
        return None
    match = _DB_SET.match("".join(member.type_text.split()))
    return match.group(1).rsplit(".", 1)[-1] if match else None


def read_db_sets(unit: CompilationUnit, class_name: str) -> dict[str, str]:
    """Existing ``DbSet<Model> Name`` declarations as {model (lower): set name}."""
    cls = unit.find_class(class_name)
    if cls is None:
        return {}
    result: dict[str, str] = {}
    for member in cls.members:
        model = _db_set_model(member)
        if model is not None:
            result.setdefault(model.lower(), member.name)
    return result


def _is_generated(member: Member) -> bool:
    if _db_set_model(member) is not None:
        return True
    return isinstance(member, MethodNode) and member.name == ON_MODEL_CREATING


def reconcile_registry(
    unit: CompilationUnit, class_name: str, entries: Sequence[RegistryEntry], usings: Sequence[str]
) -> CompilationUnit:
    """Rebuild the DbSet block and OnModelCreating wholesale.

    Members the generator does not own keep their text and relative order;
    the new block goes where the first generated member was, else after the
    constructors.
    """
    original = unit.find_class(class_name)
    if original is None:
        return unit

    entries = sorted(entries, key=lambda e: e.model.lower())
    cls = original
    layout = layout_of(cls)
    nl, indent = cls.newline, cls.indent

    texts = [db_set(e.model, e.set_name) for e in entries]
    block: list[Member] = []
    if texts:
        block = parse_members((nl + indent).join(texts), indent=indent, newline=nl)
    method = parse_members(
        on_model_creating([e.mapping for e in entries], layout), indent=indent, newline=nl
    )
    block.extend(m.with_leading(nl * 2 + indent) for m in method)

    kept: list[Member] = []
    pos: int | None = None
    old_generated: list[Member] = []
    for member in cls.members:
        if _is_generated(member):
            if pos is None:
                pos = len(kept)
            old_generated.append(member)
        else:
            kept.append(member)

    if pos is None:
        ctor_positions = [i for i, m in enumerate(kept) if isinstance(m, ConstructorNode)]
        pos = ctor_positions[-1] + 1 if ctor_positions else 0

    if block:
        if old_generated:
            block[0] = block[0].with_leading(old_generated[0].leading)
        else:
            block[0] = block[0].with_leading((nl * 2 if pos else nl) + indent)

    members = kept[:pos] + block + kept[pos:]
    result = unit.with_class(original, cls.with_members(members))
    for namespace in usings:
        result = result.with_using(namespace)
    return result


def create_registry(
    namespace: str, class_name: str, usings: Sequence[str], newline: str = "\n"
) -> CompilationUnit:
    return parse(registry_file(namespace, class_name, usings, newline), path=f"{class_name}.cs")


def entity_mapping(model: str, table: Table, infos: Sequence[PropertyInfo]) -> EntityMapping:
    """Fluent mapping for one model from its reconciled properties."""
    by_column = {i.column.lower(): i for i in infos if i.column}
    keys = tuple(
        by_column[c.name.lower()].name for c in table.primary_key if c.name.lower() in by_column
    )

    properties = []
    for column in table.ordered():
        info = by_column.get(column.name.lower())
        if info is None or not info.mapped or not info.can_set:
            continue
        never = column.is_primary_key and not column.is_identity
        if info.name == column.name and not never and not column.is_computed:
            continue
        computed = (column.computed_sql or "") if column.is_computed else None
        properties.append((info.name, column.name, never, computed))
    return EntityMapping(model=model, table=table.name, keys=keys, properties=tuple(properties))
