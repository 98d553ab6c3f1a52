"""Immutable schema model produced by introspection."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


class SqlType(str, Enum):
    """Closed set of relational scalar types the generator understands."""

    BIGINT = "bigint"
    BINARY = "binary"
    BIT = "bit"
    CHAR = "char"
    DATE = "date"
    DATETIME = "datetime"
    DATETIME2 = "datetime2"
    DATETIMEOFFSET = "datetimeoffset"
    DECIMAL = "decimal"
    FLOAT = "float"
    GEOGRAPHY = "geography"
    GEOMETRY = "geometry"
    HIERARCHYID = "hierarchyid"
    IMAGE = "image"
    INT = "int"
    MONEY = "money"
    NCHAR = "nchar"
    NTEXT = "ntext"
    NVARCHAR = "nvarchar"
    REAL = "real"
    SMALLDATETIME = "smalldatetime"
    SMALLINT = "smallint"
    SMALLMONEY = "smallmoney"
    SQL_VARIANT = "sql_variant"
    SYSNAME = "sysname"
    TEXT = "text"
    TIME = "time"
    TIMESTAMP = "timestamp"
    TINYINT = "tinyint"
    UNIQUEIDENTIFIER = "uniqueidentifier"
    VARBINARY = "varbinary"
    VARCHAR = "varchar"
    XML = "xml"


INTEGER_FAMILY = frozenset({SqlType.TINYINT, SqlType.SMALLINT, SqlType.INT, SqlType.BIGINT})


@dataclass(frozen=True, slots=True)
class ForeignKey:
    """A foreign key attached to exactly the column it constrains."""

    name: str
    table: str
    column: str
    ref_table: str
    ref_column: str
    not_enforced: bool = False

    @property
    def is_self_reference(self) -> bool:
        return self.table.lower() == self.ref_table.lower()


@dataclass(frozen=True, slots=True)
class Column:
    """A table column."""

    name: str
    ordinal: int
    sql_type: SqlType
    is_nullable: bool = False
    is_identity: bool = False
    is_computed: bool = False
    computed_sql: str | None = None
    is_primary_key: bool = False
    foreign_keys: tuple[ForeignKey, ...] = ()

    @property
    def is_generated(self) -> bool:
        """True when the database, not the caller, supplies the value."""
        return self.is_identity or self.is_computed


@dataclass(frozen=True)
class Table:
    """A table with columns keyed by lower-cased name."""

    name: str
    columns: dict[str, Column] = field(default_factory=dict)

    @classmethod
    def of(cls, name: str, columns: list[Column]) -> Table:
        return cls(name=name, columns={c.name.lower(): c for c in columns})

    def column(self, name: str) -> Column | None:
        return self.columns.get(name.lower())

    def ordered(self) -> list[Column]:
        """Columns in declaration order."""
        return sorted(self.columns.values(), key=lambda c: c.ordinal)

    @property
    def primary_key(self) -> list[Column]:
        return [c for c in self.ordered() if c.is_primary_key]

    @property
    def identity_column(self) -> Column | None:
        """The single-column primary key, if the table has one."""
        pk = self.primary_key
        return pk[0] if len(pk) == 1 else None

    def with_foreign_keys(self, fks: list[ForeignKey]) -> Table:
        by_column: dict[str, list[ForeignKey]] = {}
        for fk in fks:
            by_column.setdefault(fk.column.lower(), []).append(fk)
        columns = {
            key: replace(col, foreign_keys=tuple(by_column.get(key, ())))
            for key, col in self.columns.items()
        }
        return Table(name=self.name, columns=columns)
