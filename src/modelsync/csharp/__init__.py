"""C# source model: tree-sitter parsing, persistent nodes and templates."""

from modelsync.csharp.factory import Layout
from modelsync.csharp.keywords import escape_identifier
from modelsync.csharp.parser import parse, parse_members
from modelsync.csharp.syntax import (
    ClassNode,
    CompilationUnit,
    ConstructorNode,
    FieldNode,
    Member,
    MethodNode,
    Parameter,
    PropertyNode,
    UsingNode,
)

__all__ = [
    "ClassNode",
    "CompilationUnit",
    "ConstructorNode",
    "FieldNode",
    "Layout",
    "Member",
    "MethodNode",
    "Parameter",
    "PropertyNode",
    "UsingNode",
    "escape_identifier",
    "parse",
    "parse_members",
]
