"""Per-table DAO wrapper reconciliation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from modelsync.csharp.factory import dao_file, get_where_id
from modelsync.csharp.parser import parse, parse_members
from modelsync.csharp.syntax import ClassNode, CompilationUnit, Member, MethodNode, compact
from modelsync.reconcile.constructors import layout_of

logger = structlog.get_logger()

BASELINE_USINGS: tuple[str, ...] = (
    "System",
    "System.Collections.Generic",
    "System.Linq",
    "System.Threading.Tasks",
    "Microsoft.EntityFrameworkCore",
)

GET_WHERE_ID = "GetWhereId"


@dataclass(frozen=True)
class IdentityKey:
    """Single-column primary key as seen from C#."""

    property: str
    type_text: str


@dataclass(frozen=True)
class DaoSpec:
    """Everything needed to generate or patch one wrapper."""

    class_name: str
    model: str
    set_name: str
    base_class: str = "DaoBase"
    identity: IdentityKey | None = None
    generate_get_where_id: bool = True
    usings: tuple[str, ...] = ()

    @property
    def base(self) -> str:
        return f"{self.base_class}<{self.model}>"


def new_dao_source(spec: DaoSpec, namespace: str, newline: str = "\n") -> str:
    usings = _dedupe([*BASELINE_USINGS, *spec.usings])
    return dao_file(namespace, spec.class_name, spec.base, usings, newline)


def reconcile_dao(unit: CompilationUnit, spec: DaoSpec) -> CompilationUnit:
    """Normalize the base type, the fetch-by-identity accessor and the imports."""
    original = unit.find_class(spec.class_name)
    if original is None:
        return unit

    cls = _normalize_base(original, spec)
    cls = _reconcile_get_where_id(cls, spec)
    result = unit.with_class(original, cls)
    for namespace in _dedupe([*BASELINE_USINGS, *spec.usings]):
        result = result.with_using(namespace)
    return result


def _dedupe(items: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    out = []
    for item in items:
        if item and compact(item) not in seen:
            seen.add(compact(item))
            out.append(item)
    return out


def _normalize_base(cls: ClassNode, spec: DaoSpec) -> ClassNode:
    wanted = compact(spec.base)
    prefix = f"{spec.base_class}<"
    bases = list(cls.bases)
    for i, base in enumerate(bases):
        if compact(base).startswith(prefix) or compact(base) == spec.base_class:
            if compact(base) == wanted:
                return cls
            bases[i] = spec.base
            return cls.with_bases(bases)
    return cls.with_bases([spec.base, *bases])


def _reconcile_get_where_id(cls: ClassNode, spec: DaoSpec) -> ClassNode:
    wanted: Member | None = None
    if spec.generate_get_where_id and spec.identity is not None:
        text = get_where_id(
            spec.model,
            spec.set_name,
            spec.identity.property,
            spec.identity.type_text,
            layout_of(cls),
        )
        wanted = parse_members(text, indent=cls.indent, newline=cls.newline)[0]

    members: list[Member] = []
    solved = False
    for member in cls.members:
        if isinstance(member, MethodNode) and member.name == GET_WHERE_ID:
            if wanted is not None and not solved:
                if member.text != wanted.text:
                    member = wanted.with_leading(member.leading)
                members.append(member)
                solved = True
            continue
        members.append(member)

    if wanted is not None and not solved:
        # Blank line between the accessor and a whitespace-only neighbour
        if members and not members[0].leading.strip() and members[0].leading.count("\n") < 2:
            members[0] = members[0].with_leading(cls.newline * 2 + cls.indent)
        members.insert(0, wanted.with_leading(cls.newline + cls.indent))

    if tuple(members) == cls.members:
        return cls
    return cls.with_members(members)


def create_dao(spec: DaoSpec, namespace: str, newline: str = "\n") -> CompilationUnit:
    unit = parse(new_dao_source(spec, namespace, newline), path=f"{spec.class_name}.cs")
    return reconcile_dao(unit, spec)
