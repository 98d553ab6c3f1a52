"""Per-table DDL documentation files."""

from __future__ import annotations

from pathlib import Path

import structlog
from sqlalchemy.exc import SQLAlchemyError

from modelsync.schema.service import SchemaService

logger = structlog.get_logger()


def render_table_script(service: SchemaService, table_name: str) -> str | None:
    """DDL text for one table, or None when it cannot be produced.

    A failure here only costs this table its documentation file.
    """
    try:
        return service.create_table_script(table_name)
    except SQLAlchemyError as e:
        logger.warning("schema_dump_failed", table=table_name, error=str(e))
        return None


def schema_file_path(schema_dir: Path, table_name: str) -> Path:
    return schema_dir / f"{table_name}.sql"
