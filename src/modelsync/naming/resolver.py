"""Class name <-> table name resolution."""

from __future__ import annotations

import re
from collections.abc import Mapping

import structlog

from modelsync.naming.inflector import SUFFIXES, pluralize, singularize
from modelsync.schema.models import Table

logger = structlog.get_logger()


class NameResolver:
    """Maps class names to tables and tables to new class names.

    Resolution order for a class, first match wins:

    1. exact case-insensitive match
    2. inflected plural of the class name
    3. class name + ``s``
    4. class name + each generic plural suffix
    5. (opt-in) the class name with its plural ending stripped
    """

    def __init__(self, tables: Mapping[str, Table], *, scan_suffixes: bool = False) -> None:
        self._tables = {key.lower(): table for key, table in tables.items()}
        self._scan_suffixes = scan_suffixes

    def resolve_table(self, class_name: str) -> Table | None:
        for candidate in self._candidates(class_name):
            table = self._tables.get(candidate.lower())
            if table is not None:
                return table

        if self._scan_suffixes:
            table = self._scan(class_name)
            if table is not None:
                return table

        logger.debug("class_unresolved", class_name=class_name)
        return None

    def class_name_for(self, table: Table) -> str:
        """Class name for a table that no existing class claims."""
        name = singularize(table.name) or table.name
        return property_name_for(name)

    def _candidates(self, class_name: str) -> list[str]:
        candidates = [class_name]
        plural = pluralize(class_name)
        if plural:
            candidates.append(plural)
        candidates.append(f"{class_name}s")
        candidates.extend(f"{class_name}{suffix}" for suffix in SUFFIXES)
        return candidates

    def _scan(self, class_name: str) -> Table | None:
        # catches a plural class over a singular-named table
        target = class_name.lower()
        stems = [target[: -len(suffix)] for suffix in SUFFIXES if target.endswith(suffix)]
        singular = singularize(class_name)
        if singular:
            stems.insert(0, singular.lower())
        for key, table in sorted(self._tables.items()):
            if key in stems:
                return table
        return None


def property_name_for(column: str) -> str:
    """C# property name for a column: identifier-safe, upper-case initial."""
    name = re.sub(r"\W", "_", column.strip())
    if name[:1].isdigit():
        name = f"_{name}"
    return capitalize(name)


def capitalize(name: str) -> str:
    """Upper-case the first character, leaving the rest untouched."""
    return name[:1].upper() + name[1:]


def lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]
