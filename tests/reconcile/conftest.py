"""Shared tables for reconciliation tests."""

import pytest

from modelsync.schema.models import Column, ForeignKey, SqlType, Table


@pytest.fixture
def users_table() -> Table:
    """Users(Id int identity pk, Name nvarchar, ManagerId int null fk->Users.Id)."""
    fk = ForeignKey("FK_Users_Manager", "Users", "ManagerId", "Users", "Id")
    return Table.of(
        "Users",
        [
            Column("Id", 1, SqlType.INT, is_identity=True, is_primary_key=True),
            Column("Name", 2, SqlType.NVARCHAR),
            Column("ManagerId", 3, SqlType.INT, is_nullable=True, foreign_keys=(fk,)),
        ],
    )


@pytest.fixture
def orders_table() -> Table:
    fk = ForeignKey("FK_Orders_Users", "Orders", "UserId", "Users", "Id")
    return Table.of(
        "Orders",
        [
            Column("Id", 1, SqlType.INT, is_identity=True, is_primary_key=True),
            Column("Status", 2, SqlType.TINYINT),
            Column("UserId", 3, SqlType.INT, foreign_keys=(fk,)),
        ],
    )
