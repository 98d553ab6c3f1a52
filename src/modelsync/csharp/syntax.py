"""Persistent C# source model.

Every node keeps the exact source text it was parsed from, and members keep
their leading trivia (whitespace, comments, preprocessor lines), so an
unedited document renders back byte-for-byte. Edits return new nodes;
nothing here mutates in place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from modelsync.schema.types import normalize_csharp_type

_ATTR_NAME = re.compile(r"^\s*(?:global::)?([\w.]+)")
_ATTR_TARGET = re.compile(r"^\s*\w+\s*:(?!:)")


def split_attributes(list_text: str) -> list[str]:
    """Split ``[A(x, y), B]`` into ``["A(x, y)", "B"]``.

    An attribute target prefix (``field:``) is dropped.
    """
    inner = list_text.strip()
    if inner.startswith("["):
        inner = inner[1:]
    if inner.endswith("]"):
        inner = inner[:-1]
    inner = _ATTR_TARGET.sub("", inner, count=1)

    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    prev = ""
    for ch in inner:
        if quote:
            current.append(ch)
            if ch == quote and prev != "\\":
                quote = None
        elif ch in "\"'":
            quote = ch
            current.append(ch)
        elif ch in "([{":
            depth += 1
            current.append(ch)
        elif ch in ")]}":
            depth -= 1
            current.append(ch)
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        prev = ch
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def attribute_name(attribute_text: str) -> str:
    """Simple name of an attribute: ``Foo.Bar(1)`` -> ``Bar``."""
    match = _ATTR_NAME.match(attribute_text)
    if not match:
        return ""
    return match.group(1).rsplit(".", 1)[-1]


def compact(text: str) -> str:
    """Text with all whitespace removed, for layout-insensitive comparison."""
    return "".join(text.split())


@dataclass(frozen=True)
class Member:
    """A class member the generator does not interpret."""

    leading: str
    text: str
    name: str = ""
    kind: str = "member"

    def render(self) -> str:
        return self.leading + self.text

    def with_leading(self, leading: str) -> Member:
        return replace(self, leading=leading)


@dataclass(frozen=True)
class FieldNode(Member):
    kind: str = "field_declaration"


@dataclass(frozen=True)
class MethodNode(Member):
    kind: str = "method_declaration"


@dataclass(frozen=True)
class PropertyNode(Member):
    """An auto or computed property.

    ``type_start``/``type_end`` and ``body_start`` are offsets into ``text``;
    everything before ``body_start`` is the attribute region.
    """

    kind: str = "property_declaration"
    type_text: str = ""
    type_start: int = 0
    type_end: int = 0
    body_start: int = 0
    attribute_lists: tuple[str, ...] = ()
    can_set: bool = True
    expression_bodied: bool = False

    @property
    def base_type(self) -> str:
        return normalize_csharp_type(self.type_text)[0]

    @property
    def nullable(self) -> bool:
        return normalize_csharp_type(self.type_text)[1]

    @property
    def attributes(self) -> list[str]:
        return [a for lst in self.attribute_lists for a in split_attributes(lst)]

    def has_attribute(self, *names: str) -> bool:
        wanted = set(names)
        return any(attribute_name(a) in wanted for a in self.attributes)

    def with_type(self, type_text: str) -> PropertyNode:
        text = self.text[: self.type_start] + type_text + self.text[self.type_end :]
        return replace(
            self,
            text=text,
            type_text=type_text,
            type_end=self.type_start + len(type_text),
        )

    def with_attribute_lists(
        self, lists: list[str], *, indent: str, newline: str
    ) -> PropertyNode:
        """Replace the whole attribute region, one list per line."""
        body = self.text[self.body_start :]
        prefix = "".join(f"{lst}{newline}{indent}" for lst in lists)
        shift = len(prefix) - self.body_start
        return replace(
            self,
            text=prefix + body,
            body_start=len(prefix),
            type_start=self.type_start + shift,
            type_end=self.type_end + shift,
            attribute_lists=tuple(lists),
        )


@dataclass(frozen=True)
class Parameter:
    type_text: str
    name: str
    default: str | None = None

    def render(self) -> str:
        if self.default is None:
            return f"{self.type_text} {self.name}"
        return f"{self.type_text} {self.name} = {self.default}"


@dataclass(frozen=True)
class ConstructorNode(Member):
    kind: str = "constructor_declaration"
    modifiers: tuple[str, ...] = ()
    params: tuple[Parameter, ...] = ()
    statements: tuple[str, ...] = ()
    initializer: str | None = None

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_parameterless(self) -> bool:
        return not self.params


@dataclass(frozen=True)
class UsingNode:
    text: str

    @property
    def key(self) -> str:
        return compact(self.text)

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class ClassNode:
    """A class declaration split into header, members and tail.

    ``header`` runs from the first attribute/modifier through the opening
    brace; ``tail`` holds the trivia after the last member and the closing
    brace.
    """

    header: str
    name: str
    members: tuple[Member, ...]
    tail: str
    namespace: str = ""
    bases: tuple[str, ...] = ()
    base_span: tuple[int, int] | None = None
    name_end: int = 0
    indent: str = "    "
    newline: str = "\n"

    def render(self) -> str:
        return self.header + "".join(m.render() for m in self.members) + self.tail

    @property
    def indent_unit(self) -> str:
        return "\t" if self.indent.startswith("\t") else "    "

    @property
    def properties(self) -> list[PropertyNode]:
        return [m for m in self.members if isinstance(m, PropertyNode)]

    @property
    def constructors(self) -> list[ConstructorNode]:
        return [m for m in self.members if isinstance(m, ConstructorNode)]

    def index_of(self, member: Member) -> int:
        for i, m in enumerate(self.members):
            if m is member:
                return i
        return -1

    def with_members(self, members: list[Member] | tuple[Member, ...]) -> ClassNode:
        return replace(self, members=tuple(members))

    def with_bases(self, bases: list[str]) -> ClassNode:
        clause = ": " + ", ".join(bases)
        if self.base_span is not None:
            start, end = self.base_span
            header = self.header[:start] + clause + self.header[end:]
            span = (start, start + len(clause))
        else:
            start = self.name_end
            header = self.header[:start] + " " + clause + self.header[start:]
            span = (start + 1, start + 1 + len(clause))
        return replace(self, header=header, bases=tuple(bases), base_span=span)


Part = str | UsingNode | ClassNode


@dataclass(frozen=True)
class CompilationUnit:
    """A whole source file as a flat run of text, usings and classes."""

    parts: tuple[Part, ...]
    newline: str = "\n"
    error_count: int = 0

    def render(self) -> str:
        return "".join(p if isinstance(p, str) else p.render() for p in self.parts)

    @property
    def classes(self) -> list[ClassNode]:
        return [p for p in self.parts if isinstance(p, ClassNode)]

    @property
    def usings(self) -> list[UsingNode]:
        return [p for p in self.parts if isinstance(p, UsingNode)]

    def find_class(self, name: str) -> ClassNode | None:
        for cls in self.classes:
            if cls.name == name:
                return cls
        return None

    def with_class(self, old: ClassNode, new: ClassNode) -> CompilationUnit:
        parts = tuple(new if p is old else p for p in self.parts)
        return replace(self, parts=parts)

    def has_using(self, namespace: str) -> bool:
        key = compact(f"using {namespace};")
        return any(u.key == key for u in self.usings)

    def with_using(self, namespace: str) -> CompilationUnit:
        """Add ``using <namespace>;`` unless an equivalent directive exists."""
        if self.has_using(namespace):
            return self
        node = UsingNode(f"using {namespace};")
        parts = list(self.parts)
        last = max((i for i, p in enumerate(parts) if isinstance(p, UsingNode)), default=-1)
        if last >= 0:
            parts[last + 1 : last + 1] = [self.newline, node]
        else:
            parts[0:0] = [node, self.newline * 2]
        return replace(self, parts=tuple(parts))
