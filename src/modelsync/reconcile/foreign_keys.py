"""Reference annotations for foreign-key backed properties."""

from __future__ import annotations

import structlog

from modelsync.csharp.factory import reference_key
from modelsync.csharp.syntax import (
    ClassNode,
    PropertyNode,
    attribute_name,
    compact,
    split_attributes,
)
from modelsync.naming.resolver import property_name_for
from modelsync.reconcile.models import REFERENCE_ATTRIBUTES, ForeignKeyPatch, NameIndex
from modelsync.reconcile.properties import mapped_properties
from modelsync.schema.models import ForeignKey, Table

logger = structlog.get_logger()


def _annotation(
    fk: ForeignKey,
    cls: ClassNode,
    solved: dict[str, str],
    index: NameIndex,
    report_unresolved: bool,
) -> str:
    if fk.is_self_reference:
        target_prop = solved.get(fk.ref_column.lower()) or property_name_for(fk.ref_column)
        return reference_key(cls.name, target_prop, not fk.not_enforced, self_reference=True)

    target_class = index.class_for(fk.ref_table)
    if target_class is None:
        if report_unresolved:
            logger.warning(
                "foreign_key_target_unresolved",
                class_name=cls.name,
                column=fk.column,
                ref_table=fk.ref_table,
            )
        target_class = fk.ref_table
    target_prop = index.property_for(target_class, fk.ref_column)
    if target_prop is None:
        target_prop = property_name_for(fk.ref_column)
    return reference_key(target_class, target_prop, not fk.not_enforced, self_reference=False)


def compute_foreign_key_patch(
    cls: ClassNode,
    table: Table,
    solved: dict[str, str],
    index: NameIndex,
    *,
    report_unresolved: bool = True,
) -> ForeignKeyPatch:
    """Fresh reference annotations for every mapped, column-backed property.

    Properties whose column has no foreign key get an empty set, which
    strips stale annotations.
    """
    mapped = mapped_properties(cls)
    prop_to_column = {name: col for col, name in solved.items()}
    patch: ForeignKeyPatch = {}
    for i, member in enumerate(cls.members):
        if not isinstance(member, PropertyNode) or not mapped.get(i):
            continue
        col_key = prop_to_column.get(member.name)
        if col_key is None:
            continue
        column = table.column(col_key)
        if column is None:
            continue
        patch[member.name] = tuple(
            _annotation(fk, cls, solved, index, report_unresolved) for fk in column.foreign_keys
        )
    return patch


def reference_attributes(prop: PropertyNode) -> list[str]:
    return [a for a in prop.attributes if attribute_name(a) in REFERENCE_ATTRIBUTES]


def replace_reference_attributes(
    prop: PropertyNode, annotations: tuple[str, ...], *, indent: str, newline: str
) -> PropertyNode:
    """Swap the property's reference annotations, keeping every other attribute.

    Returns ``prop`` itself when the annotations already match.
    """
    current = ["[" + a + "]" for a in reference_attributes(prop)]
    if [compact(a) for a in current] == [compact(a) for a in annotations]:
        return prop

    lists: list[str] = []
    for lst in prop.attribute_lists:
        attrs = split_attributes(lst)
        kept = [a for a in attrs if attribute_name(a) not in REFERENCE_ATTRIBUTES]
        if len(kept) == len(attrs):
            lists.append(lst)
        elif kept:
            lists.append("[" + ", ".join(kept) + "]")
    lists.extend(annotations)
    return prop.with_attribute_lists(lists, indent=indent, newline=newline)


def apply_foreign_key_patch(cls: ClassNode, patch: ForeignKeyPatch) -> ClassNode:
    members = list(cls.members)
    changed = False
    for i, member in enumerate(members):
        if not isinstance(member, PropertyNode) or member.name not in patch:
            continue
        indent = member.leading.rsplit("\n", 1)[-1]
        if indent.strip():
            indent = cls.indent
        updated = replace_reference_attributes(
            member, patch[member.name], indent=indent, newline=cls.newline
        )
        if updated is not member:
            members[i] = updated
            changed = True
    return cls.with_members(members) if changed else cls
