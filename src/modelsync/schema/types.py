"""Mapping between relational scalar types and C# types."""

from __future__ import annotations

from modelsync.schema.models import INTEGER_FAMILY, SqlType

# Relational type -> C# type
_CS_TYPES: dict[SqlType, str] = {
    SqlType.BIGINT: "long",
    SqlType.BINARY: "byte[]",
    SqlType.BIT: "bool",
    SqlType.CHAR: "string",
    SqlType.DATE: "DateTime",
    SqlType.DATETIME: "DateTime",
    SqlType.DATETIME2: "DateTime",
    SqlType.DATETIMEOFFSET: "DateTimeOffset",
    SqlType.DECIMAL: "decimal",
    SqlType.FLOAT: "double",
    SqlType.GEOGRAPHY: "object",
    SqlType.GEOMETRY: "object",
    SqlType.HIERARCHYID: "object",
    SqlType.IMAGE: "byte[]",
    SqlType.INT: "int",
    SqlType.MONEY: "decimal",
    SqlType.NCHAR: "string",
    SqlType.NTEXT: "string",
    SqlType.NVARCHAR: "string",
    SqlType.REAL: "float",
    SqlType.SMALLDATETIME: "DateTime",
    SqlType.SMALLINT: "short",
    SqlType.SMALLMONEY: "decimal",
    SqlType.SQL_VARIANT: "object",
    SqlType.SYSNAME: "string",
    SqlType.TEXT: "string",
    SqlType.TIME: "TimeSpan",
    SqlType.TIMESTAMP: "byte[]",
    SqlType.TINYINT: "byte",
    SqlType.UNIQUEIDENTIFIER: "Guid",
    SqlType.VARBINARY: "byte[]",
    SqlType.VARCHAR: "string",
    SqlType.XML: "string",
}

# Names other dialects (via SQLAlchemy visit names) report for the same types
_ALIASES: dict[str, SqlType] = {
    "integer": SqlType.INT,
    "int4": SqlType.INT,
    "mediumint": SqlType.INT,
    "big_integer": SqlType.BIGINT,
    "int8": SqlType.BIGINT,
    "small_integer": SqlType.SMALLINT,
    "int2": SqlType.SMALLINT,
    "boolean": SqlType.BIT,
    "bool": SqlType.BIT,
    "numeric": SqlType.DECIMAL,
    "double": SqlType.FLOAT,
    "double_precision": SqlType.FLOAT,
    "float8": SqlType.FLOAT,
    "float4": SqlType.REAL,
    "string": SqlType.NVARCHAR,
    "unicode": SqlType.NVARCHAR,
    "unicode_text": SqlType.NTEXT,
    "clob": SqlType.TEXT,
    "character varying": SqlType.VARCHAR,
    "character": SqlType.CHAR,
    "uuid": SqlType.UNIQUEIDENTIFIER,
    "blob": SqlType.VARBINARY,
    "large_binary": SqlType.VARBINARY,
    "bytea": SqlType.VARBINARY,
    "_binary": SqlType.VARBINARY,
    "interval": SqlType.TIME,
    "timestamp with time zone": SqlType.DATETIMEOFFSET,
    "rowversion": SqlType.TIMESTAMP,
}

# C# spellings that refer to the same type
_CS_ALIASES: dict[str, str] = {
    "Int64": "long",
    "Int32": "int",
    "Int16": "short",
    "Byte": "byte",
    "Boolean": "bool",
    "String": "string",
    "Decimal": "decimal",
    "Double": "double",
    "Single": "float",
    "Object": "object",
    "Byte[]": "byte[]",
}

_CS_PRIMITIVES = frozenset(_CS_TYPES.values()) | {"char", "sbyte", "ushort", "uint", "ulong"}


def parse_sql_type(name: str) -> SqlType | None:
    """Resolve a type name such as ``NVARCHAR(50)`` or ``integer``.

    Returns None for types outside the known enumeration.
    """
    key = name.strip().lower()
    paren = key.find("(")
    if paren != -1:
        key = key[:paren].strip()
    try:
        return SqlType(key)
    except ValueError:
        return _ALIASES.get(key)


def csharp_type(sql_type: SqlType, nullable: bool = False) -> str:
    """C# declaration type for a column."""
    base = _CS_TYPES.get(sql_type, "object")
    return f"{base}?" if nullable else base


def normalize_csharp_type(type_text: str) -> tuple[str, bool]:
    """Split a declared C# type into (canonical base type, nullable)."""
    text = "".join(type_text.split())
    nullable = text.endswith("?")
    if nullable:
        text = text[:-1]
    if text.startswith("Nullable<") and text.endswith(">"):
        text = text[len("Nullable<") : -1]
        nullable = True
    if text.startswith("System."):
        text = text[len("System.") :]
    return _CS_ALIASES.get(text, text), nullable


def is_identifier_type(base_type: str) -> bool:
    """True for enum-like or custom types that have no relational counterpart."""
    return base_type not in _CS_PRIMITIVES


def is_integer_family(sql_type: SqlType) -> bool:
    return sql_type in INTEGER_FAMILY
