"""SQLite fixtures for schema tests."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

DDL = (
    "CREATE TABLE Users ("
    " Id INTEGER PRIMARY KEY,"
    " Name NVARCHAR(50) NOT NULL,"
    " ManagerId INTEGER REFERENCES Users(Id),"
    " Meta JSON)",
    "CREATE TABLE Tags (Id INTEGER PRIMARY KEY, Label NVARCHAR(20) NOT NULL)",
    "CREATE TABLE PostTags ("
    " PostId INTEGER NOT NULL,"
    " TagId INTEGER NOT NULL REFERENCES Tags(Id),"
    " PRIMARY KEY (PostId, TagId))",
)


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """URL of a file-backed SQLite database with a small schema."""
    url = f"sqlite:///{tmp_path / 'shop.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        for statement in DDL:
            conn.execute(text(statement))
    engine.dispose()
    return url
