"""Property diff between a model class and its table."""

from __future__ import annotations

import re

import structlog

from modelsync.csharp.syntax import ClassNode, PropertyNode
from modelsync.naming.resolver import property_name_for
from modelsync.reconcile.models import NOT_MAPPED_ATTRIBUTES, PropertiesPatch
from modelsync.schema.models import Column, Table
from modelsync.schema.types import csharp_type, is_identifier_type, is_integer_family

logger = structlog.get_logger()

_DYNAMIC_MARKERS = (
    re.compile(r"^//\s*dynamic\s*$", re.IGNORECASE),
    re.compile(r"^/\*\s*dynamic\s*\*/$", re.IGNORECASE),
)


def is_dynamic_marker(trivia: str) -> bool:
    """True when trivia holds a ``// dynamic`` or ``/* dynamic */`` comment."""
    return any(
        pattern.match(line.strip()) for line in trivia.splitlines() for pattern in _DYNAMIC_MARKERS
    )


def find_boundary(cls: ClassNode) -> int | None:
    """Index of the first member after the dynamic marker, if any."""
    for i, member in enumerate(cls.members):
        if is_dynamic_marker(member.leading):
            return i
    return None


def mapped_properties(cls: ClassNode) -> dict[int, bool]:
    """Member index -> mapped flag for every property of the class.

    A property is unmapped when it carries ``[NotMapped]``, sits at or after
    the dynamic boundary, or is expression-bodied (it has no storage).
    """
    boundary = find_boundary(cls)
    result: dict[int, bool] = {}
    for i, member in enumerate(cls.members):
        if not isinstance(member, PropertyNode):
            continue
        result[i] = (
            (boundary is None or i < boundary)
            and not member.has_attribute(*NOT_MAPPED_ATTRIBUTES)
            and not member.expression_bodied
        )
    return result


def expected_type(column: Column) -> str:
    return csharp_type(column.sql_type, column.is_nullable)


def needs_update(prop: PropertyNode, column: Column) -> bool:
    """Whether the declared type disagrees with the column.

    Identifier types over integer columns are treated as enums and left alone.
    """
    base, nullable = prop.base_type, prop.nullable
    if is_identifier_type(base) and is_integer_family(column.sql_type):
        return False
    expected_base = csharp_type(column.sql_type)
    return base != expected_base or nullable != column.is_nullable


def compute_patch(cls: ClassNode, table: Table) -> PropertiesPatch:
    """Add/update/remove sets that bring ``cls`` in line with ``table``."""
    mapped = mapped_properties(cls)
    by_name: dict[str, tuple[int, PropertyNode]] = {}
    for i, member in enumerate(cls.members):
        if isinstance(member, PropertyNode):
            by_name.setdefault(member.name.lstrip("@").lower(), (i, member))

    patch = PropertiesPatch()
    solved_indexes: set[int] = set()

    for column in table.ordered():
        found = by_name.get(property_name_for(column.name).lower())
        if found is None:
            patch.add.append(column)
            patch.solved[column.name.lower()] = property_name_for(column.name)
            continue

        index, prop = found
        solved_indexes.add(index)
        patch.solved[column.name.lower()] = prop.name
        if not mapped[index]:
            continue
        if needs_update(prop, column):
            patch.update.append((prop.name, column))
        elif is_identifier_type(prop.base_type):
            logger.debug(
                "enum_property_kept",
                class_name=cls.name,
                property=prop.name,
                column=column.name,
            )

    for index, is_mapped in mapped.items():
        if is_mapped and index not in solved_indexes:
            patch.remove.append(cls.members[index].name)

    logger.debug(
        "properties_patch",
        class_name=cls.name,
        add=len(patch.add),
        update=len(patch.update),
        remove=len(patch.remove),
    )
    return patch
