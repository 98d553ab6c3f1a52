"""Patch objects and lookups shared by the reconciliation passes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from modelsync.csharp.syntax import CompilationUnit
from modelsync.schema.models import Column

REFERENCE_ATTRIBUTES = ("ReferenceKey", "ReferenceKeyAttribute")
NOT_MAPPED_ATTRIBUTES = ("NotMapped", "NotMappedAttribute")


@dataclass(frozen=True)
class PropertyInfo:
    """What the engine knows about one property of a model class."""

    name: str
    type_text: str
    mapped: bool
    can_set: bool
    has_reference_keys: bool
    column: str | None = None
    default_value: str | None = None


@dataclass
class PropertiesPatch:
    """Add/update/remove sets for one class against its table."""

    add: list[Column] = field(default_factory=list)
    update: list[tuple[str, Column]] = field(default_factory=list)
    remove: list[str] = field(default_factory=list)
    # column (lower) -> property name, for every column with a property
    solved: dict[str, str] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not (self.add or self.update or self.remove)


# property name -> reference annotation texts, in foreign key order
ForeignKeyPatch = dict[str, tuple[str, ...]]


@dataclass(frozen=True)
class NameIndex:
    """Read-only view of the table<->class map used for cross-class lookups.

    ``classes`` maps lower-cased table names to class names; ``columns``
    maps lower-cased class names to {lower-cased column: property name}.
    """

    classes: Mapping[str, str] = field(default_factory=dict)
    columns: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    def class_for(self, table: str) -> str | None:
        return self.classes.get(table.lower())

    def property_for(self, class_name: str, column: str) -> str | None:
        return self.columns.get(class_name.lower(), {}).get(column.lower())


@dataclass(frozen=True)
class ModelRewrite:
    """Outcome of reconciling one model class."""

    unit: CompilationUnit
    class_found: bool
    changed: bool
    namespace: str = ""
    # column (lower) -> property name after reconciliation
    properties: dict[str, str] = field(default_factory=dict)
    infos: tuple[PropertyInfo, ...] = ()
    custom_usings: tuple[str, ...] = ()
    patch: PropertiesPatch | None = None
