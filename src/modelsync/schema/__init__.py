"""Schema module exports."""

from modelsync.schema.models import INTEGER_FAMILY, Column, ForeignKey, SqlType, Table
from modelsync.schema.service import SchemaService
from modelsync.schema.types import csharp_type, normalize_csharp_type, parse_sql_type

__all__ = [
    "Column",
    "ForeignKey",
    "INTEGER_FAMILY",
    "SchemaService",
    "SqlType",
    "Table",
    "csharp_type",
    "normalize_csharp_type",
    "parse_sql_type",
]
