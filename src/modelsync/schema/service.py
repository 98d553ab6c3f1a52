"""Relational schema introspection on SQLAlchemy.

Connection and authorization failures are reported as ``SchemaError`` with
``SCHEMA_CONNECT_FAILED`` so callers can tell them apart from an empty
schema. Columns whose type is outside ``SqlType`` are skipped.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import MetaData, create_engine, inspect, text
from sqlalchemy import Table as SaTable
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.schema import CreateTable

from modelsync.core.errors import SchemaError
from modelsync.schema.models import Column, ForeignKey, SqlType, Table
from modelsync.schema.types import parse_sql_type

logger = structlog.get_logger()

_INTEGER_NAMES = frozenset({"integer", "int", "bigint", "smallint", "tinyint", "big_integer"})


class SchemaService:
    """Reads tables, columns and foreign keys from a live database.

    Usage::

        service = SchemaService("mssql+pyodbc://...", database="Shop")
        if (err := service.test_connection()) is not None:
            ...
        tables = service.get_schema()
    """

    def __init__(self, connection: str, database: str | None = None) -> None:
        self._connection = connection
        self._database = database
        self._engine: Engine | None = None

    @property
    def database(self) -> str | None:
        return self._database

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            url = make_url(self._connection)
            if self._database:
                url = url.set(database=self._database)
            self._engine = create_engine(url)
        return self._engine

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def test_connection(self) -> SchemaError | None:
        """Return a connect error, or None when the database answers."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except (ArgumentError, NoSuchModuleError) as e:
            return SchemaError.connect_failed(f"invalid connection string: {e}")
        except SQLAlchemyError as e:
            return SchemaError.connect_failed(str(e).splitlines()[0] if str(e) else repr(e))
        return None

    def get_schema(self) -> dict[str, Table]:
        """Introspect every table. Keys are lower-cased table names.

        Raises:
            SchemaError: When the catalog cannot be read.
        """
        try:
            inspector = inspect(self.engine)
            names = inspector.get_table_names()
            tables: dict[str, Table] = {}
            for name in names:
                columns = self._read_columns(inspector, name)
                tables[name.lower()] = Table.of(name, columns)
        except SQLAlchemyError as e:
            raise SchemaError.analyze_failed(self._database, str(e)) from e

        fks = self.get_foreign_keys([t.name for t in tables.values()])
        result = {key: table.with_foreign_keys(fks.get(key, [])) for key, table in tables.items()}
        logger.info("schema_loaded", tables=len(result), database=self._database)
        return result

    def get_foreign_keys(self, table_names: list[str]) -> dict[str, list[ForeignKey]]:
        """Foreign keys per owning table (lower-cased), one entry per column pair."""
        try:
            inspector = inspect(self.engine)
            disabled = self._disabled_foreign_keys()
            result: dict[str, list[ForeignKey]] = {}
            for table_name in table_names:
                keys: list[ForeignKey] = []
                for fk in inspector.get_foreign_keys(table_name):
                    fk_name = fk.get("name") or f"FK_{table_name}_{fk['referred_table']}"
                    for col, ref_col in zip(
                        fk["constrained_columns"], fk["referred_columns"], strict=False
                    ):
                        keys.append(
                            ForeignKey(
                                name=fk_name,
                                table=table_name,
                                column=col,
                                ref_table=fk["referred_table"],
                                ref_column=ref_col,
                                not_enforced=fk_name in disabled,
                            )
                        )
                result[table_name.lower()] = keys
        except SQLAlchemyError as e:
            raise SchemaError.analyze_failed(self._database, str(e)) from e
        return result

    def create_table_script(self, table_name: str) -> str:
        """Compile reflected CREATE TABLE DDL for one table."""
        metadata = MetaData()
        table = SaTable(table_name, metadata, autoload_with=self.engine)
        return str(CreateTable(table).compile(self.engine)).strip() + "\n"

    def _disabled_foreign_keys(self) -> set[str]:
        if self.engine.dialect.name != "mssql":
            return set()
        with self.engine.connect() as conn:
            rows = conn.execute(text("SELECT name FROM sys.foreign_keys WHERE is_disabled = 1"))
            return {row[0] for row in rows}

    def _read_columns(self, inspector: Any, table_name: str) -> list[Column]:
        pk = inspector.get_pk_constraint(table_name) or {}
        pk_columns = {c.lower() for c in pk.get("constrained_columns") or []}
        is_sqlite = self.engine.dialect.name == "sqlite"

        columns: list[Column] = []
        for ordinal, info in enumerate(inspector.get_columns(table_name), start=1):
            sql_type = _resolve_type(info["type"])
            if sql_type is None:
                logger.debug(
                    "column_type_skipped",
                    table=table_name,
                    column=info["name"],
                    type=str(type(info["type"]).__name__),
                )
                continue

            is_pk = info["name"].lower() in pk_columns
            identity = bool(info.get("identity")) or info.get("autoincrement") is True
            if is_sqlite and is_pk and len(pk_columns) == 1:
                identity = identity or _visit_name(info["type"]) in _INTEGER_NAMES
            computed = info.get("computed")

            columns.append(
                Column(
                    name=info["name"],
                    ordinal=ordinal,
                    sql_type=sql_type,
                    is_nullable=bool(info.get("nullable", True)) and not is_pk,
                    is_identity=identity,
                    is_computed=computed is not None,
                    computed_sql=str(computed["sqltext"]) if computed else None,
                    is_primary_key=is_pk,
                )
            )
        return columns


def _visit_name(sa_type: Any) -> str:
    return str(getattr(sa_type, "__visit_name__", type(sa_type).__name__)).lower()


def _resolve_type(sa_type: Any) -> SqlType | None:
    resolved = parse_sql_type(_visit_name(sa_type))
    if resolved is None:
        resolved = parse_sql_type(type(sa_type).__name__)
    return resolved
