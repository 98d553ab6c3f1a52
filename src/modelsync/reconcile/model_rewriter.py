"""Full reconciliation pipeline for one model class."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from modelsync.csharp.factory import property_text
from modelsync.csharp.parser import parse_members
from modelsync.csharp.syntax import ClassNode, CompilationUnit, Member, PropertyNode
from modelsync.naming.resolver import property_name_for
from modelsync.reconcile.constructors import ensure_empty_constructor, regenerate_constructor
from modelsync.reconcile.foreign_keys import (
    apply_foreign_key_patch,
    compute_foreign_key_patch,
    reference_attributes,
    replace_reference_attributes,
)
from modelsync.reconcile.models import ModelRewrite, NameIndex, PropertyInfo
from modelsync.reconcile.properties import (
    compute_patch,
    expected_type,
    find_boundary,
    mapped_properties,
)
from modelsync.schema.models import Column, Table
from modelsync.schema.types import is_identifier_type

logger = structlog.get_logger()


@dataclass(frozen=True)
class ModelRewriter:
    """Brings one model class in line with its table.

    Pass order: empty constructor, property remove/update/add, reference
    annotations, parameterized constructor, usings. A class name that does
    not occur in the unit is a no-op.
    """

    class_name: str
    table: Table
    index: NameIndex = field(default_factory=NameIndex)
    column_defaults: Mapping[str, str] = field(default_factory=dict)
    annotations_namespace: str = "ModelSync.Annotations"
    report_unresolved: bool = True

    def rewrite(self, unit: CompilationUnit) -> ModelRewrite:
        original = unit.find_class(self.class_name)
        if original is None:
            return ModelRewrite(unit=unit, class_found=False, changed=False)

        patch = compute_patch(original, self.table)
        cls = ensure_empty_constructor(original)
        cls = self._remove(cls, patch.remove)
        cls = self._update(cls, patch.update)
        cls = self._add(cls, patch.add)

        fk_patch = compute_foreign_key_patch(
            cls, self.table, patch.solved, self.index, report_unresolved=self.report_unresolved
        )
        cls = apply_foreign_key_patch(cls, fk_patch)
        cls = regenerate_constructor(
            cls,
            self.table,
            patch.solved,
            column_defaults=self.column_defaults,
            removed=tuple(patch.remove),
        )

        new_unit = unit.with_class(original, cls)
        if any(reference_attributes(p) for p in cls.properties):
            new_unit = new_unit.with_using(self.annotations_namespace)

        changed = new_unit.render() != unit.render()
        if changed:
            logger.debug("model_rewritten", class_name=self.class_name, table=self.table.name)

        return ModelRewrite(
            unit=new_unit,
            class_found=True,
            changed=changed,
            namespace=cls.namespace,
            properties=dict(patch.solved),
            infos=self._infos(cls, patch.solved),
            custom_usings=self._custom_usings(new_unit, cls, patch.solved),
            patch=patch,
        )

    def _remove(self, cls: ClassNode, names: list[str]) -> ClassNode:
        if not names:
            return cls
        drop = set(names)
        mapped = mapped_properties(cls)
        members = [
            m
            for i, m in enumerate(cls.members)
            if not (isinstance(m, PropertyNode) and mapped.get(i) and m.name in drop)
        ]
        return cls.with_members(members)

    def _update(self, cls: ClassNode, updates: list[tuple[str, Column]]) -> ClassNode:
        if not updates:
            return cls
        wanted = dict(updates)
        members: list[Member] = []
        for member in cls.members:
            if isinstance(member, PropertyNode) and member.name in wanted:
                column = wanted.pop(member.name)
                member = member.with_type(expected_type(column))
                indent = member.leading.rsplit("\n", 1)[-1]
                member = replace_reference_attributes(
                    member,
                    (),
                    indent=indent if not indent.strip() else cls.indent,
                    newline=cls.newline,
                )
            members.append(member)
        return cls.with_members(members)

    def _add(self, cls: ClassNode, columns: list[Column]) -> ClassNode:
        if not columns:
            return cls
        texts = [property_text(expected_type(c), property_name_for(c.name)) for c in columns]
        new = parse_members(
            (cls.newline + cls.indent).join(texts), indent=cls.indent, newline=cls.newline
        )

        # new properties follow the last property above the dynamic boundary
        boundary = find_boundary(cls)
        limit = boundary if boundary is not None else len(cls.members)
        last = max(
            (i for i, m in enumerate(cls.members[:limit]) if isinstance(m, PropertyNode)),
            default=-1,
        )
        if last >= 0:
            pos = last + 1
        else:
            pos = boundary if boundary is not None else 0
        members = list(cls.members)
        members[pos:pos] = new
        after = pos + len(new)
        if after < len(members) and not isinstance(members[after], PropertyNode):
            leading = members[after].leading
            if not leading.strip() and leading.count("\n") < 2:
                members[after] = members[after].with_leading(cls.newline * 2 + cls.indent)
        return cls.with_members(members)

    def _infos(self, cls: ClassNode, solved: dict[str, str]) -> tuple[PropertyInfo, ...]:
        columns = {name: col for col, name in solved.items()}
        mapped = mapped_properties(cls)
        infos = []
        for i, member in enumerate(cls.members):
            if not isinstance(member, PropertyNode):
                continue
            column_key = columns.get(member.name)
            column = self.table.column(column_key) if column_key else None
            infos.append(
                PropertyInfo(
                    name=member.name,
                    type_text=member.type_text,
                    mapped=bool(mapped.get(i)),
                    can_set=member.can_set,
                    has_reference_keys=bool(reference_attributes(member)),
                    column=column.name if column else None,
                    default_value=self.column_defaults.get(column_key) if column_key else None,
                )
            )
        return tuple(infos)

    def _custom_usings(
        self, unit: CompilationUnit, cls: ClassNode, solved: dict[str, str]
    ) -> tuple[str, ...]:
        """Imports a wrapper needs when properties use identifier types."""
        names = set(solved.values())
        if not any(p.name in names and is_identifier_type(p.base_type) for p in cls.properties):
            return ()
        usings = []
        for u in unit.usings:
            body = u.text.strip().removeprefix("global").strip()
            body = body.removeprefix("using").strip().rstrip(";").strip()
            if body and not body.startswith("static ") and "=" not in body:
                usings.append(body)
        return tuple(usings)
