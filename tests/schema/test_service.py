"""Tests for SQLAlchemy-backed schema introspection."""

from modelsync.core.errors import ErrorCode
from modelsync.schema.dump import render_table_script, schema_file_path
from modelsync.schema.models import SqlType
from modelsync.schema.service import SchemaService


class TestConnection:
    """Connection checks."""

    def test_reachable_database(self, sqlite_url: str) -> None:
        service = SchemaService(sqlite_url)
        try:
            assert service.test_connection() is None
        finally:
            service.dispose()

    def test_malformed_url(self) -> None:
        err = SchemaService("definitely not a url").test_connection()

        assert err is not None
        assert err.code == ErrorCode.SCHEMA_CONNECT_FAILED
        assert "invalid connection string" in err.message

    def test_unreachable_database(self, tmp_path) -> None:
        url = f"sqlite:///{tmp_path / 'missing' / 'nested' / 'x.db'}"

        err = SchemaService(url).test_connection()

        assert err is not None
        assert err.code == ErrorCode.SCHEMA_CONNECT_FAILED


class TestGetSchema:
    """Table, column and foreign key reflection."""

    def test_tables_are_keyed_by_lower_name(self, sqlite_url: str) -> None:
        service = SchemaService(sqlite_url)
        try:
            tables = service.get_schema()
        finally:
            service.dispose()

        assert set(tables) == {"users", "tags", "posttags"}
        assert tables["users"].name == "Users"

    def test_columns(self, sqlite_url: str) -> None:
        # Given
        service = SchemaService(sqlite_url)

        # When
        try:
            users = service.get_schema()["users"]
        finally:
            service.dispose()

        # Then - the JSON column has no known scalar type and is skipped
        assert [c.name for c in users.ordered()] == ["Id", "Name", "ManagerId"]
        ident = users.column("id")
        assert ident.is_primary_key and ident.is_identity and not ident.is_nullable
        assert users.column("Name").sql_type == SqlType.NVARCHAR
        assert users.column("Name").is_nullable is False
        assert users.column("ManagerId").is_nullable is True
        assert users.identity_column is ident

    def test_foreign_keys_attach_to_their_column(self, sqlite_url: str) -> None:
        service = SchemaService(sqlite_url)
        try:
            tables = service.get_schema()
        finally:
            service.dispose()

        (fk,) = tables["users"].column("ManagerId").foreign_keys
        assert fk.ref_table == "Users"
        assert fk.ref_column == "Id"
        assert fk.is_self_reference
        assert not fk.not_enforced
        assert tables["users"].column("Name").foreign_keys == ()
        assert tables["posttags"].column("TagId").foreign_keys[0].ref_table == "Tags"

    def test_composite_key_has_no_identity(self, sqlite_url: str) -> None:
        service = SchemaService(sqlite_url)
        try:
            post_tags = service.get_schema()["posttags"]
        finally:
            service.dispose()

        assert [c.name for c in post_tags.primary_key] == ["PostId", "TagId"]
        assert post_tags.identity_column is None
        assert not any(c.is_identity for c in post_tags.ordered())


class TestDump:
    """DDL documentation."""

    def test_create_table_script(self, sqlite_url: str) -> None:
        service = SchemaService(sqlite_url)
        try:
            script = render_table_script(service, "Tags")
        finally:
            service.dispose()

        assert script is not None
        assert "CREATE TABLE" in script
        assert "Label" in script
        assert script.endswith("\n")

    def test_unknown_table_yields_none(self, sqlite_url: str) -> None:
        service = SchemaService(sqlite_url)
        try:
            assert render_table_script(service, "Nope") is None
        finally:
            service.dispose()

    def test_schema_file_path(self, tmp_path) -> None:
        assert schema_file_path(tmp_path, "Tags") == tmp_path / "Tags.sql"
