"""Parameterless and parameterized constructor reconciliation.

The parameterized constructor is never edited in place. It is regenerated
from the final property set, keeping the caller-visible parameter order of
the previous version where the columns survive.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from modelsync.csharp.factory import Layout, constructor, empty_constructor
from modelsync.csharp.keywords import escape_identifier
from modelsync.csharp.parser import parse_members
from modelsync.csharp.syntax import ClassNode, ConstructorNode, Member, Parameter, PropertyNode
from modelsync.naming.resolver import lower_first
from modelsync.reconcile.properties import mapped_properties
from modelsync.schema.models import Table

_ASSIGNMENT = re.compile(r"^(?:this\s*\.\s*)?@?(\w+)\s*=(?!=)", re.DOTALL)


def layout_of(cls: ClassNode) -> Layout:
    return Layout(indent=cls.indent, unit=cls.indent_unit, newline=cls.newline)


def _instance_ctors(cls: ClassNode) -> list[tuple[int, ConstructorNode]]:
    return [
        (i, m)
        for i, m in enumerate(cls.members)
        if isinstance(m, ConstructorNode) and not m.is_static
    ]


def ensure_empty_constructor(cls: ClassNode) -> ClassNode:
    """Add ``public Name() {}`` unless a parameterless constructor exists.

    It goes right before the first constructor, else after the last member.
    """
    ctors = _instance_ctors(cls)
    if any(c.is_parameterless for _, c in ctors):
        return cls

    layout = layout_of(cls)
    text = empty_constructor(cls.name, layout)
    node = parse_members(text, indent=cls.indent, newline=cls.newline)[0]
    members = list(cls.members)
    pos = ctors[0][0] if ctors else len(members)
    node = node.with_leading((cls.newline * 2 if pos else cls.newline) + cls.indent)
    members.insert(pos, node)
    return cls.with_members(members)


def _param_name(prop_name: str) -> str:
    return escape_identifier(lower_first(prop_name.lstrip("@")))


def _key(name: str) -> str:
    return name.lstrip("@").lower()


def regenerate_constructor(
    cls: ClassNode,
    table: Table,
    solved: Mapping[str, str],
    *,
    column_defaults: Mapping[str, str],
    removed: tuple[str, ...] = (),
) -> ClassNode:
    """Replace every parameterized constructor with one freshly generated.

    ``solved`` maps lower-cased column names to property names; ``removed``
    names properties dropped in this pass, whose assignments go too.
    """
    props = {_key(m.name): m for m in cls.members if isinstance(m, PropertyNode)}
    mapped = mapped_properties(cls)
    mapped_names = {_key(cls.members[i].name) for i, ok in mapped.items() if ok}

    params: list[tuple[int, str, PropertyNode]] = []  # (ordinal, property key, node)
    defaults: list[tuple[str, str]] = []  # (property, expression)
    for column in table.ordered():
        prop_name = solved.get(column.name.lower())
        if prop_name is None or _key(prop_name) not in mapped_names:
            continue
        prop = props[_key(prop_name)]
        if column.is_generated or prop.expression_bodied:
            continue
        expr = column_defaults.get(column.name.lower())
        if expr is not None:
            defaults.append((prop.name, expr))
            continue
        params.append((column.ordinal, _key(prop.name), prop))

    owned = {_key(p) for p in solved.values()} | {_key(r) for r in removed}
    old = [(i, c) for i, c in _instance_ctors(cls) if not c.is_parameterless]
    prior = old[0][1] if old else None
    order = _ordered(params, prior)

    members = list(cls.members)
    if not order:
        for i, _ in reversed(old):
            del members[i]
        return cls.with_members(members)

    prior_defaults = {_key(p.name): p.default for p in prior.params} if prior else {}
    parameters = [
        Parameter(
            type_text=prop.type_text,
            name=_param_name(prop.name),
            default=prior_defaults.get(_key(_param_name(prop.name))),
        )
        for prop in order
    ]
    statements = []
    for prop in order:
        pname = _param_name(prop.name)
        target = f"this.{prop.name}" if prop.name == pname else prop.name
        statements.append(f"{target} = {pname};")
    statements.extend(f"{name} = {expr};" for name, expr in defaults)
    if prior is not None:
        statements.extend(s for s in prior.statements if not _owned_assignment(s, owned))

    layout = layout_of(cls)
    text = constructor(
        cls.name,
        parameters,
        statements,
        layout,
        modifiers=prior.modifiers if prior and prior.modifiers else ("public",),
        initializer=prior.initializer if prior else None,
    )

    if prior is not None and prior.text == text and len(old) == 1:
        return cls

    node: Member = parse_members(text, indent=cls.indent, newline=cls.newline)[0]
    if old:
        pos = old[0][0]
        node = node.with_leading(members[pos].leading)
        for i, _ in reversed(old):
            del members[i]
    else:
        empties = [i for i, c in _instance_ctors(cls) if c.is_parameterless]
        pos = empties[0] + 1 if empties else len(members)
        node = node.with_leading(cls.newline * 2 + cls.indent)
    members.insert(min(pos, len(members)), node)
    return cls.with_members(members)


def _ordered(
    params: list[tuple[int, str, PropertyNode]], prior: ConstructorNode | None
) -> list[PropertyNode]:
    """Prior parameter order first; new parameters before the first defaulted one."""
    if prior is None:
        return [prop for _, _, prop in params]

    by_key = {key: prop for _, key, prop in params}
    prior_keys = [_key(p.name) for p in prior.params]
    kept: list[tuple[str, bool]] = []
    for p in prior.params:
        key = _key(p.name)
        if key in by_key:
            kept.append((key, p.default is not None))
    new = [prop for _, key, prop in params if key not in prior_keys]

    first_default = next((i for i, (_, has_default) in enumerate(kept) if has_default), len(kept))
    ordered = [by_key[k] for k, _ in kept[:first_default]]
    ordered.extend(new)
    ordered.extend(by_key[k] for k, _ in kept[first_default:])
    return ordered


def _owned_assignment(statement: str, owned: set[str]) -> bool:
    match = _ASSIGNMENT.match(statement.strip())
    return bool(match) and match.group(1).lower() in owned
