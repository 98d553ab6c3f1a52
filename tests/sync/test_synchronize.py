"""End-to-end synchronization runs against SQLite databases."""

from pathlib import Path

import pytest
from structlog.testing import capture_logs

from modelsync.config.models import ModelSyncConfig
from modelsync.core.progress import is_decorated
from modelsync.sync import SyncOptions, SyncStep, synchronize

USERS_DDL = (
    "CREATE TABLE Users ("
    " Id INTEGER PRIMARY KEY,"
    " Name NVARCHAR(50) NOT NULL,"
    " ManagerId INTEGER REFERENCES Users(Id))"
)
TAGS_DDL = "CREATE TABLE Tags (Id INTEGER PRIMARY KEY, Label NVARCHAR(20) NOT NULL)"
CUSTOMERS_DDL = "CREATE TABLE Customers (Id INTEGER PRIMARY KEY, Name NVARCHAR(50) NOT NULL)"
ORDERS_DDL = (
    "CREATE TABLE Orders ("
    " Id INTEGER PRIMARY KEY,"
    " CustomerId INTEGER NOT NULL REFERENCES Customers(Id))"
)

EXPECTED_USER = """using System;
using System.Collections.Generic;
using ModelSync.Annotations;

namespace Shop.Models;

public class User
{
    public int Id { get; set; }
    public string Name { get; set; }
    [ReferenceKey(typeof(User), nameof(Id), true)]
    public int? ManagerId { get; set; }

    public User()
    {
    }

    public User(string name, int? managerId)
    {
        Name = name;
        ManagerId = managerId;
    }
}
"""

EXPECTED_USER_DAO = """using System;
using System.Collections.Generic;
using System.Linq;
using System.Threading.Tasks;
using Microsoft.EntityFrameworkCore;
using Shop.Models;

namespace Shop.Dao;

public class UserDao : DaoBase<User>
{
    public Task<User?> GetWhereId(int id)
    {
        return Context.Users.FirstOrDefaultAsync(x => x.Id == id);
    }
}
"""

TAG_MODEL = """namespace Shop.Models;

public class Tag
{
    public int Id { get; set; }
    public string Label { get; set; }

    public Tag()
    {
    }

    public Tag(string label)
    {
        Label = label;
    }
}
"""

ARCHIVE_REGISTRY = """using Microsoft.EntityFrameworkCore;

namespace Shop;

public partial class Db : DbContext
{
    public virtual DbSet<Archive> Archives { get; set; }
}
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class TestNewTables:
    """Tables without classes get a model, a wrapper and a registry entry."""

    def test_self_referencing_table(self, make_db, project: Path, config) -> None:
        # Given
        url = make_db(USERS_DDL)

        # When
        result = synchronize(url, None, project, config=config)

        # Then
        assert result.ok, result.error
        assert result.failures == []
        assert _read(project / "Models" / "User.cs") == EXPECTED_USER
        assert _read(project / "Dao" / "UserDao.cs") == EXPECTED_USER_DAO
        registry = _read(project / "Db.cs")
        assert "namespace Shop;" in registry
        assert "using Shop.Models;" in registry
        assert "public virtual DbSet<User> Users { get; set; }" in registry
        assert "entity.HasKey(e => e.Id);" in registry
        assert "CREATE TABLE" in _read(project / "Schema" / "Users.sql")

        summary = result.summary
        assert (summary.models_created, summary.daos_created) == (1, 1)
        assert summary.registry_updated
        assert summary.schema_written == 1

    def test_second_run_changes_nothing(self, make_db, project: Path, config) -> None:
        # Given
        url = make_db(USERS_DDL, TAGS_DDL)
        first = synchronize(url, None, project, config=config)
        assert first.ok
        snapshot = {p: p.read_bytes() for p in project.rglob("*") if p.is_file()}

        # When
        second = synchronize(url, None, project, config=config)

        # Then
        assert second.ok
        assert second.deltas == []
        assert {p: p.read_bytes() for p in project.rglob("*") if p.is_file()} == snapshot

    def test_uniform_identity_convention(self, make_db, project: Path, config) -> None:
        """With the sentinel present, models implement IEntity and wrappers skip GetWhereId."""
        # Given
        _write(
            project / "Models" / "IEntity.cs",
            "namespace Shop.Models;\n\npublic interface IEntity<T>\n{\n    T Id { get; }\n}\n",
        )
        url = make_db(TAGS_DDL)

        # When
        result = synchronize(url, None, project, config=config)

        # Then
        assert result.ok
        assert "public class Tag : IEntity<int>" in _read(project / "Models" / "Tag.cs")
        assert "GetWhereId" not in _read(project / "Dao" / "TagDao.cs")
        assert (project / "Models" / "IEntity.cs").exists()


class TestExistingClasses:
    """Classes already on disk."""

    def test_singular_class_maps_to_plural_table(self, make_db, project: Path, config) -> None:
        # Given
        _write(project / "Models" / "Tag.cs", TAG_MODEL)
        url = make_db(TAGS_DDL)

        # When
        result = synchronize(url, None, project, config=config)

        # Then - the class is in sync already, only the wrapper is new
        assert result.ok
        assert _read(project / "Models" / "Tag.cs") == TAG_MODEL
        assert not (project / "Models" / "Tags.cs").exists()
        assert (project / "Dao" / "TagDao.cs").exists()
        assert result.summary.models_created == 0
        assert result.summary.models_updated == 0

    def test_stale_property_is_removed(self, make_db, project: Path, config) -> None:
        # Given
        _write(
            project / "Models" / "Tag.cs",
            TAG_MODEL.replace(
                "    public string Label { get; set; }\n",
                "    public string Label { get; set; }\n    public string Legacy { get; set; }\n",
            ),
        )
        url = make_db(TAGS_DDL)

        # When
        result = synchronize(url, None, project, config=config)

        # Then
        assert result.ok
        assert _read(project / "Models" / "Tag.cs") == TAG_MODEL
        assert result.summary.models_updated == 1

    def test_existing_set_name_is_kept(self, make_db, project: Path, config) -> None:
        # Given
        _write(
            project / "Db.cs",
            "using Microsoft.EntityFrameworkCore;\nusing Shop.Models;\n\nnamespace Shop;\n\n"
            "public partial class Db : DbContext\n{\n"
            "    public virtual DbSet<Tag> AllTags { get; set; }\n}\n",
        )
        url = make_db(TAGS_DDL)

        # When
        result = synchronize(url, None, project, config=config)

        # Then
        assert result.ok
        assert "public virtual DbSet<Tag> AllTags { get; set; }" in _read(project / "Db.cs")
        assert "Context.AllTags.FirstOrDefaultAsync" in _read(project / "Dao" / "TagDao.cs")

    def test_known_reference_target_is_not_reported_unresolved(
        self, make_db, project: Path, config
    ) -> None:
        # Given - both classes exist after a first run
        url = make_db(CUSTOMERS_DDL, ORDERS_DDL)
        assert synchronize(url, None, project, config=config).ok

        # When
        with capture_logs() as logs:
            result = synchronize(url, None, project, config=config)

        # Then
        assert result.ok
        assert not [e for e in logs if e["event"] == "foreign_key_target_unresolved"]
        assert "[ReferenceKey(typeof(Customer), nameof(Customer.Id), true)]" in _read(
            project / "Models" / "Order.cs"
        )

    def test_bom_is_preserved(self, make_db, project: Path, config) -> None:
        path = project / "Models" / "Tag.cs"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"\xef\xbb\xbf" + TAG_MODEL.replace("Label", "Title").encode())
        url = make_db(TAGS_DDL)

        result = synchronize(url, None, project, config=config)

        assert result.ok
        assert path.read_bytes().startswith(b"\xef\xbb\xbf")
        assert "public string Label { get; set; }" in _read(path)


class TestSweep:
    """Generated artifacts nothing claims anymore."""

    def test_unclaimed_generated_files_are_deleted(self, make_db, project: Path, config) -> None:
        # Given - Legacy is wrapped by a DAO, Archive is listed in the registry
        legacy = _write(project / "Models" / "Legacy.cs", "public class Legacy\n{\n}\n")
        legacy_dao = _write(
            project / "Dao" / "LegacyDao.cs", "public class LegacyDao : DaoBase<Legacy>\n{\n}\n"
        )
        archive = _write(project / "Models" / "Archive.cs", "public class Archive\n{\n}\n")
        _write(project / "Db.cs", ARCHIVE_REGISTRY)
        base = _write(
            project / "Dao" / "DaoBase.cs", "public abstract class DaoBase<T>\n{\n}\n"
        )
        enum = _write(project / "Models" / "Status.cs", "public enum Status { Active }\n")
        old_sql = _write(project / "Schema" / "Legacies.sql", "CREATE TABLE Legacies (Id INT)\n")
        url = make_db(TAGS_DDL)

        # When
        result = synchronize(url, None, project, config=config)

        # Then
        assert result.ok
        assert not legacy.exists()
        assert not legacy_dao.exists()
        assert not archive.exists()
        assert not old_sql.exists()
        assert base.exists()
        assert enum.exists()
        assert (project / "Schema" / "Tags.sql").exists()
        assert "DbSet<Archive>" not in _read(project / "Db.cs")
        summary = result.summary
        assert (summary.models_deleted, summary.daos_deleted, summary.schema_deleted) == (2, 1, 1)

    def test_hand_written_classes_are_kept(self, make_db, project: Path, config) -> None:
        # Given
        summary_text = "public class TagSummary\n{\n    public int Count { get; set; }\n}\n"
        helper = _write(project / "Models" / "TagSummary.cs", summary_text)
        audit = _write(project / "Dao" / "AuditDao.cs", "public class AuditDao\n{\n}\n")
        url = make_db(TAGS_DDL)

        # When
        with capture_logs() as logs:
            result = synchronize(url, None, project, config=config)

        # Then
        assert result.ok
        assert _read(helper) == summary_text
        assert audit.exists()
        assert (project / "Models" / "Tag.cs").exists()
        assert result.summary.models_deleted == 0
        assert result.summary.daos_deleted == 0
        unresolved = [
            e for e in logs if e["event"] == "class_unresolved" and e["log_level"] == "warning"
        ]
        assert [e["class_name"] for e in unresolved] == ["TagSummary"]

    def test_generated_second_class_for_same_table_is_swept(
        self, make_db, project: Path, config
    ) -> None:
        _write(project / "Models" / "Tag.cs", TAG_MODEL)
        duplicate = _write(project / "Models" / "Tags.cs", "public class Tags\n{\n}\n")
        duplicate_dao = _write(
            project / "Dao" / "TagsDao.cs", "public class TagsDao : DaoBase<Tags>\n{\n}\n"
        )
        url = make_db(TAGS_DDL)

        result = synchronize(url, None, project, config=config)

        assert result.ok
        assert not duplicate.exists()
        assert not duplicate_dao.exists()
        assert _read(project / "Models" / "Tag.cs") == TAG_MODEL

    def test_hand_written_second_class_for_same_table_is_kept(
        self, make_db, project: Path, config
    ) -> None:
        _write(project / "Models" / "Tag.cs", TAG_MODEL)
        duplicate = _write(project / "Models" / "Tags.cs", "public class Tags\n{\n}\n")
        url = make_db(TAGS_DDL)

        result = synchronize(url, None, project, config=config)

        assert result.ok
        assert _read(duplicate) == "public class Tags\n{\n}\n"
        assert _read(project / "Models" / "Tag.cs") == TAG_MODEL


class TestOptions:
    """Per-run options."""

    def test_dry_run_writes_nothing(self, make_db, project: Path, config) -> None:
        # Given
        url = make_db(USERS_DDL)
        stale = _write(project / "Models" / "Legacy.cs", "public class Legacy\n{\n}\n")
        _write(project / "Dao" / "LegacyDao.cs", "public class LegacyDao : DaoBase<Legacy>\n{\n}\n")

        # When
        result = synchronize(url, None, project, SyncOptions(dry_run=True), config=config)

        # Then
        assert result.ok
        assert result.dry_run
        actions = {(d.path, d.action) for d in result.deltas}
        assert ("Models/User.cs", "created") in actions
        assert ("Models/Legacy.cs", "deleted") in actions
        assert not (project / "Models" / "User.cs").exists()
        assert stale.exists()

    def test_schema_dump_can_be_disabled(self, make_db, project: Path, config) -> None:
        url = make_db(TAGS_DDL)
        old_sql = _write(project / "Schema" / "Legacies.sql", "-- old\n")

        result = synchronize(url, None, project, SyncOptions(dump_schema=False), config=config)

        assert result.ok
        assert not (project / "Schema" / "Tags.sql").exists()
        assert old_sql.exists()

    def test_custom_layout(self, make_db, project: Path) -> None:
        layout = {
            "models_dir": "Data/Entities",
            "registry_file": "ShopDb.cs",
            "registry_class": "ShopDb",
        }
        config = ModelSyncConfig.model_validate({"layout": layout})
        url = make_db(TAGS_DDL)

        result = synchronize(url, None, project, config=config)

        assert result.ok
        model = _read(project / "Data" / "Entities" / "Tag.cs")
        assert "namespace Shop.Data.Entities;" in model
        assert "public partial class ShopDb : DbContext" in _read(project / "ShopDb.cs")

    def test_decoration_is_restored_after_run(self, make_db, project: Path, config) -> None:
        url = make_db(TAGS_DDL)

        result = synchronize(url, None, project, SyncOptions(decorate_messages=True), config=config)

        assert result.ok
        assert not is_decorated()


class TestUnitFailures:
    """Failures local to one artifact are reported without aborting the run."""

    def test_schema_render_failure_names_dump_step(
        self, make_db, project: Path, config, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Given
        def broken(service, table_name):
            raise RuntimeError(f"cannot script {table_name}")

        monkeypatch.setattr("modelsync.sync.ops.render_table_script", broken)
        url = make_db(TAGS_DDL)

        # When
        result = synchronize(url, None, project, config=config)

        # Then
        assert result.ok
        assert [(f.step, f.target) for f in result.failures] == [(SyncStep.DUMP_SCHEMA, "Tags")]
        assert "cannot script Tags" in result.failures[0].message
        assert (project / "Models" / "Tag.cs").exists()
        assert not (project / "Schema" / "Tags.sql").exists()


class TestFatalErrors:
    """Failures that abort the run name their step."""

    def test_unreachable_database(self, tmp_path: Path, project: Path, config) -> None:
        url = f"sqlite:///{tmp_path / 'missing' / 'x.db'}"

        result = synchronize(url, None, project, config=config)

        assert not result.ok
        assert result.error.step == SyncStep.CONNECT_DB
        assert result.deltas == []

    def test_malformed_connection_string(self, project: Path, config) -> None:
        result = synchronize("not a url", None, project, config=config)

        assert result.error is not None
        assert result.error.step == SyncStep.CONNECT_DB
        assert "invalid connection string" in result.error.message

    def test_missing_project(self, make_db, tmp_path: Path, config) -> None:
        url = make_db(TAGS_DDL)

        result = synchronize(url, None, tmp_path / "nope", config=config)

        assert result.error is not None
        assert result.error.step == SyncStep.LOAD_CODE
        assert "SourceError" in result.error.raw_cause
