"""Tree-sitter front end that builds the persistent C# source model.

Only top-level structure is interpreted: using directives, class
declarations (at any namespace depth, not nested in other classes) and the
members of those classes. Everything else is kept as raw text between
nodes.
"""

from __future__ import annotations

import re
import threading
from typing import Any

import structlog

from modelsync.csharp.syntax import (
    ClassNode,
    CompilationUnit,
    ConstructorNode,
    FieldNode,
    Member,
    MethodNode,
    Parameter,
    Part,
    PropertyNode,
    UsingNode,
)

logger = structlog.get_logger()

_NAMESPACE_KINDS = frozenset({"namespace_declaration", "file_scoped_namespace_declaration"})
_CONTAINER_KINDS = _NAMESPACE_KINDS | {"compilation_unit", "declaration_list"}
_ACCESSOR = re.compile(r"^(?:\[[^\]]*\]\s*)*((?:\w+\s+)*?)(get|set|init)\b")

_local = threading.local()


def _get_parser() -> Any:
    """One tree-sitter parser per thread; parsers are not thread-safe."""
    parser = getattr(_local, "parser", None)
    if parser is None:
        import tree_sitter
        import tree_sitter_c_sharp

        parser = tree_sitter.Parser()
        parser.language = tree_sitter.Language(tree_sitter_c_sharp.language())
        _local.parser = parser
    return parser


def detect_newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


class _Builder:
    """Slices one parse tree into syntax nodes."""

    def __init__(self, source: bytes) -> None:
        self._src = source

    def text(self, start: int, end: int) -> str:
        return self._src[start:end].decode("utf-8")

    def node_text(self, node: Any) -> str:
        return self.text(node.start_byte, node.end_byte)

    def collect(self, node: Any, namespace: str, out: list[tuple[Any, str]]) -> None:
        """Find using directives and classes, remembering their namespace."""
        scoped = namespace
        for child in node.children:
            kind = child.type
            if kind == "using_directive":
                out.append((child, scoped))
            elif kind == "class_declaration":
                out.append((child, scoped))
            elif kind in _NAMESPACE_KINDS:
                name_node = child.child_by_field_name("name")
                name = self.node_text(name_node) if name_node is not None else ""
                inner = f"{namespace}.{name}" if namespace and name else name or namespace
                if kind == "file_scoped_namespace_declaration":
                    # Older grammars put the file's declarations after it as siblings
                    scoped = inner
                self.collect(child, inner, out)
            elif kind in _CONTAINER_KINDS:
                self.collect(child, scoped, out)

    def build_class(self, node: Any, namespace: str, newline: str) -> ClassNode:
        start, end = node.start_byte, node.end_byte
        name_node = node.child_by_field_name("name")
        name = self.node_text(name_node) if name_node is not None else ""

        body = node.child_by_field_name("body")
        if body is None:
            body = next((c for c in node.children if c.type == "declaration_list"), None)
        if body is None or not body.children:
            return ClassNode(
                header=self.text(start, end),
                name=name,
                members=(),
                tail="",
                namespace=namespace,
                newline=newline,
            )

        brace_end = body.children[0].end_byte
        name_end = name_node.end_byte if name_node is not None else start
        bases: tuple[str, ...] = ()
        base_span: tuple[int, int] | None = None
        for child in node.children:
            if child.type == "type_parameter_list":
                name_end = child.end_byte
            elif child.type == "base_list":
                bases = tuple(self.node_text(c) for c in child.named_children)
                base_span = (
                    len(self.text(start, child.start_byte)),
                    len(self.text(start, child.end_byte)),
                )

        members: list[Member] = []
        cursor = brace_end
        for child in body.named_children:
            if child.type == "comment" or child.type.startswith("preproc"):
                continue
            leading = self.text(cursor, child.start_byte)
            members.append(self.build_member(child, leading))
            cursor = child.end_byte

        class_indent = self._line_indent(start)
        indent = class_indent + "    "
        if members:
            last_line = members[0].leading.rsplit("\n", 1)[-1]
            if last_line and not last_line.strip():
                indent = last_line

        return ClassNode(
            header=self.text(start, brace_end),
            name=name,
            members=tuple(members),
            tail=self.text(cursor, end),
            namespace=namespace,
            bases=bases,
            base_span=base_span,
            name_end=len(self.text(start, name_end)),
            indent=indent,
            newline=newline,
        )

    def build_member(self, node: Any, leading: str) -> Member:
        text = self.node_text(node)
        name_node = node.child_by_field_name("name")
        name = self.node_text(name_node) if name_node is not None else ""
        kind = node.type

        if kind == "property_declaration":
            return self._property(node, leading, text, name)
        if kind == "constructor_declaration":
            return self._constructor(node, leading, text, name)
        if kind == "method_declaration":
            return MethodNode(leading=leading, text=text, name=name)
        if kind == "field_declaration":
            return FieldNode(leading=leading, text=text, name=name)
        return Member(leading=leading, text=text, name=name, kind=kind)

    def _property(self, node: Any, leading: str, text: str, name: str) -> PropertyNode:
        base = node.start_byte
        type_node = node.child_by_field_name("type")
        attribute_lists: list[str] = []
        body_start = 0
        for child in node.children:
            if child.type == "attribute_list":
                attribute_lists.append(self.node_text(child))
            elif child.type != "comment":
                body_start = len(self.text(base, child.start_byte))
                break

        can_set = False
        expression_bodied = False
        for child in node.children:
            if child.type == "arrow_expression_clause":
                expression_bodied = True
            elif child.type == "accessor_list":
                for accessor in child.named_children:
                    match = _ACCESSOR.match(self.node_text(accessor))
                    if match and match.group(2) in ("set", "init"):
                        if "private" not in match.group(1).split():
                            can_set = True

        # character offsets into text, which may hold multi-byte characters
        type_start = len(self.text(base, type_node.start_byte)) if type_node is not None else 0
        type_end = len(self.text(base, type_node.end_byte)) if type_node is not None else 0
        return PropertyNode(
            leading=leading,
            text=text,
            name=name,
            type_text=text[type_start:type_end],
            type_start=type_start,
            type_end=type_end,
            body_start=body_start,
            attribute_lists=tuple(attribute_lists),
            can_set=can_set,
            expression_bodied=expression_bodied,
        )

    def _constructor(self, node: Any, leading: str, text: str, name: str) -> ConstructorNode:
        modifiers: list[str] = []
        initializer: str | None = None
        for child in node.children:
            if child.type == "modifier":
                modifiers.append(self.node_text(child))
            elif child.type == "constructor_initializer":
                initializer = self.node_text(child)

        params: list[Parameter] = []
        param_list = node.child_by_field_name("parameters")
        if param_list is not None:
            for p in param_list.named_children:
                if p.type != "parameter":
                    continue
                params.append(self._parameter(p))

        statements: list[str] = []
        body = node.child_by_field_name("body")
        if body is not None and body.type == "block":
            statements = [
                self.node_text(s)
                for s in body.named_children
                if s.type != "comment" and not s.type.startswith("preproc")
            ]
        elif body is not None:
            expr = body.named_children[0] if body.named_children else body
            statements = [self.node_text(expr) + ";"]

        return ConstructorNode(
            leading=leading,
            text=text,
            name=name,
            modifiers=tuple(modifiers),
            params=tuple(params),
            statements=tuple(statements),
            initializer=initializer,
        )

    def _parameter(self, node: Any) -> Parameter:
        type_node = node.child_by_field_name("type")
        name_node = node.child_by_field_name("name")
        type_text = self.node_text(type_node) if type_node is not None else ""
        name = self.node_text(name_node) if name_node is not None else ""
        default: str | None = None
        if name_node is not None:
            rest = self.text(name_node.end_byte, node.end_byte)
            if "=" in rest:
                default = rest.split("=", 1)[1].strip()
        return Parameter(type_text=type_text, name=name, default=default)

    def _line_indent(self, pos: int) -> str:
        line_start = self._src.rfind(b"\n", 0, pos) + 1
        prefix = self.text(line_start, pos)
        return prefix if not prefix.strip() else ""


def _count_errors(node: Any) -> int:
    if not node.has_error:
        return 0
    count = 1 if node.type == "ERROR" or node.is_missing else 0
    return count + sum(_count_errors(c) for c in node.children)


def parse(text: str, *, path: str = "<memory>") -> CompilationUnit:
    """Parse C# source into a CompilationUnit.

    Syntax errors do not abort the parse; they are counted and logged.
    """
    source = text.encode("utf-8")
    tree = _get_parser().parse(source)
    newline = detect_newline(text)
    builder = _Builder(source)

    found: list[tuple[Any, str]] = []
    builder.collect(tree.root_node, "", found)
    found.sort(key=lambda item: item[0].start_byte)

    parts: list[Part] = []
    cursor = 0
    for node, namespace in found:
        if node.start_byte < cursor:
            continue
        if node.start_byte > cursor:
            parts.append(builder.text(cursor, node.start_byte))
        if node.type == "using_directive":
            parts.append(UsingNode(builder.node_text(node)))
        else:
            parts.append(builder.build_class(node, namespace, newline))
        cursor = node.end_byte
    if cursor < len(source):
        parts.append(builder.text(cursor, len(source)))

    errors = _count_errors(tree.root_node)
    if errors:
        logger.warning("csharp_parse_errors", path=path, errors=errors)
    return CompilationUnit(parts=tuple(parts), newline=newline, error_count=errors)


def parse_members(text: str, *, indent: str, newline: str) -> list[Member]:
    """Parse member declarations rendered as text.

    ``text`` is already indented for continuation lines; the first line is
    placed at ``indent``. Returned members have ``newline + indent`` as
    leading trivia.
    """
    wrapper = f"class __Generated{newline}{{{newline}{indent}{text}{newline}}}{newline}"
    unit = parse(wrapper, path="<generated>")
    cls = unit.find_class("__Generated")
    if cls is None:
        return []
    return [m.with_leading(newline + indent) for m in cls.members]
