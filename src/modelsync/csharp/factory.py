"""Canonical C# text for generated members and files.

Member builders return text whose continuation lines are already indented
for the target class; ``parse_members`` turns that text into nodes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from modelsync.csharp.syntax import Parameter


@dataclass(frozen=True)
class Layout:
    """Indentation and newline style of the file being edited."""

    indent: str = "    "
    unit: str = "    "
    newline: str = "\n"

    def block(self, lines: Sequence[str]) -> str:
        """Join member lines; lines after the first get the member indent."""
        out = [lines[0]]
        for line in lines[1:]:
            out.append(f"{self.indent}{line}" if line else "")
        return self.newline.join(out)


def escape_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "")


def property_text(type_text: str, name: str) -> str:
    return f"public {type_text} {name} {{ get; set; }}"


def reference_key(
    target_class: str, target_property: str, enforced: bool, *, self_reference: bool
) -> str:
    target = target_property if self_reference else f"{target_class}.{target_property}"
    flag = "true" if enforced else "false"
    return f"[ReferenceKey(typeof({target_class}), nameof({target}), {flag})]"


def empty_constructor(class_name: str, layout: Layout) -> str:
    return layout.block([f"public {class_name}()", "{", "}"])


def constructor(
    class_name: str,
    params: Iterable[Parameter],
    statements: Iterable[str],
    layout: Layout,
    *,
    modifiers: Sequence[str] = ("public",),
    initializer: str | None = None,
) -> str:
    signature = f"{' '.join(modifiers)} {class_name}({', '.join(p.render() for p in params)})"
    if initializer:
        signature = f"{signature} {initializer}"
    body = [f"{layout.unit}{s}" for s in statements]
    return layout.block([signature, "{", *body, "}"])


def get_where_id(
    model: str, set_name: str, key_property: str, key_type: str, layout: Layout
) -> str:
    u = layout.unit
    return layout.block(
        [
            f"public Task<{model}?> GetWhereId({key_type} id)",
            "{",
            f"{u}return Context.{set_name}.FirstOrDefaultAsync(x => x.{key_property} == id);",
            "}",
        ]
    )


def db_set(model: str, set_name: str) -> str:
    return f"public virtual DbSet<{model}> {set_name} {{ get; set; }}"


@dataclass(frozen=True)
class EntityMapping:
    """One ``modelBuilder.Entity<T>`` block of the registry."""

    model: str
    table: str
    keys: tuple[str, ...]
    # (property, column, value_generated_never, computed_sql)
    properties: tuple[tuple[str, str, bool, str | None], ...]


def on_model_creating(entities: Sequence[EntityMapping], layout: Layout) -> str:
    u = layout.unit
    lines = ["protected override void OnModelCreating(ModelBuilder modelBuilder)", "{"]
    for entity in entities:
        lines.append(f"{u}modelBuilder.Entity<{entity.model}>(entity =>")
        lines.append(f"{u}{{")
        lines.append(f'{u}{u}entity.ToTable("{escape_string(entity.table)}");')
        if len(entity.keys) == 1:
            lines.append(f"{u}{u}entity.HasKey(e => e.{entity.keys[0]});")
        elif entity.keys:
            keys = ", ".join(f"e.{k}" for k in entity.keys)
            lines.append(f"{u}{u}entity.HasKey(e => new {{ {keys} }});")
        else:
            lines.append(f"{u}{u}entity.HasNoKey();")
        for prop, column, never, computed in entity.properties:
            chain = f"entity.Property(e => e.{prop})"
            if never:
                chain += ".ValueGeneratedNever()"
            if computed is not None:
                chain += f'.HasComputedColumnSql("{escape_string(computed)}", false)'
            chain += f'.HasColumnName("{escape_string(column)}");'
            lines.append(f"{u}{u}{chain}")
        lines.append(f"{u}}});")
        lines.append("")
    lines.append(f"{u}OnModelCreatingPartial(modelBuilder);")
    lines.append("}")
    return layout.block(lines)


def _file(
    usings: Sequence[str], namespace: str, class_decl: str, body: Sequence[str], newline: str
) -> str:
    lines = [f"using {u};" for u in usings]
    if lines:
        lines.append("")
    lines.extend([f"namespace {namespace};", "", class_decl, "{"])
    lines.extend(f"    {b}" if b else "" for b in body)
    lines.extend(["}", ""])
    return newline.join(lines)


def model_file(
    namespace: str,
    class_name: str,
    properties: Sequence[tuple[str, str]],
    *,
    bases: Sequence[str] = (),
    newline: str = "\n",
) -> str:
    """A new model class with its properties and a parameterless constructor."""
    decl = f"public class {class_name}"
    if bases:
        decl += " : " + ", ".join(bases)
    body = [property_text(t, n) for t, n in properties]
    if body:
        body.append("")
    body.extend([f"public {class_name}()", "{", "}"])
    return _file(["System", "System.Collections.Generic"], namespace, decl, body, newline)


def dao_file(
    namespace: str, class_name: str, base: str, usings: Sequence[str], newline: str = "\n"
) -> str:
    return _file(usings, namespace, f"public class {class_name} : {base}", [], newline)


def registry_file(
    namespace: str, class_name: str, usings: Sequence[str], newline: str = "\n"
) -> str:
    body = [
        f"public {class_name}(DbContextOptions<{class_name}> options) : base(options)",
        "{",
        "}",
        "",
        "partial void OnModelCreatingPartial(ModelBuilder modelBuilder);",
    ]
    return _file(usings, namespace, f"public partial class {class_name} : DbContext", body, newline)
