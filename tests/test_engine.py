"""Unit tests for the storage engines and their file helpers."""

import pytest
import yaml
from unittest.mock import patch

from taskhive.data import YAMLStore, atomic_write, load_yaml_file
from taskhive.data.io import DATA_YAML
from taskhive.data.validate import check_schema_version, validate_database
from taskhive.recovery import (
    CorruptionError, FatalError, FileOperationError, MigrationNeededError, NotFound, PersistenceError,
)
from taskhive.version import APP_SCHEMA_VERSION


class TestMemoryStore:
    """Test the CRUD contract on the in-memory engine."""

    def test_insert_and_get(self, store):
        row = store.insert("tasks", {"id": "t1", "title": "A"})
        assert row == {"id": "t1", "title": "A"}
        assert store.get("tasks", "t1") == row
        assert store.get("tasks", "missing") is None

    def test_returned_records_are_copies(self, store):
        row = store.insert("profiles", {"id": "p1", "user_id": "u1", "expertise": ["x"]})
        row["expertise"].append("y")
        fetched = store.get("profiles", "p1")
        fetched["expertise"].append("z")
        assert store.get("profiles", "p1")["expertise"] == ["x"]

    def test_unknown_table(self, store):
        with pytest.raises(PersistenceError, match="does not exist"):
            store.select("nope")

    def test_insert_requires_id(self, store):
        with pytest.raises(PersistenceError):
            store.insert("tasks", {"title": "A"})

    def test_duplicate_id_and_unique_column(self, store):
        store.insert("accounts", {"id": "a1", "email": "x@y.z"})
        with pytest.raises(PersistenceError, match="pkey"):
            store.insert("accounts", {"id": "a1", "email": "other@y.z"})
        with pytest.raises(PersistenceError, match="email"):
            store.insert("accounts", {"id": "a2", "email": "x@y.z"})
        assert store.count("accounts") == 1

    def test_update(self, store):
        store.insert("tasks", {"id": "t1", "title": "A", "status": "todo"})
        row = store.update("tasks", "t1", {"status": "done"})
        assert row == {"id": "t1", "title": "A", "status": "done"}
        with pytest.raises(NotFound):
            store.update("tasks", "t2", {"status": "done"})
        with pytest.raises(PersistenceError):
            store.update("tasks", "t1", {"id": "t9"})

    def test_select_filter_and_order(self, store):
        store.insert("tasks", {"id": "1", "owner": "a", "created_at": "2030-01-02"})
        store.insert("tasks", {"id": "2", "owner": "b", "created_at": "2030-01-01"})
        store.insert("tasks", {"id": "3", "owner": "a", "created_at": "2030-01-03"})

        assert [r["id"] for r in store.select("tasks", {"owner": "a"})] == ["1", "3"]
        assert [r["id"] for r in store.select("tasks", order_by="created_at")] == ["2", "1", "3"]
        assert [r["id"] for r in store.select("tasks", order_by="created_at", descending=True)] == ["3", "1", "2"]
        assert [r["id"] for r in store.select("tasks", {"id": ["1", "2"]})] == ["1", "2"]
        assert store.select_one("tasks", {"owner": "c"}) is None

    def test_order_ties_follow_insertion(self, store):
        for i in range(3):
            store.insert("task_comments", {"id": str(i), "created_at": "same"})
        assert [r["id"] for r in store.select("task_comments", order_by="created_at")] == ["0", "1", "2"]
        assert [r["id"] for r in store.select("task_comments", order_by="created_at", descending=True)] == ["2", "1", "0"]

    def test_dump(self, store):
        store.insert("tasks", {"id": "t1"})
        dump = store.dump()
        assert dump["schema_version"] == APP_SCHEMA_VERSION
        assert dump["tasks"] == [{"id": "t1"}]
        assert dump["queries"] == []


class TestYAMLStore:
    """Test the file-backed engine."""

    def test_missing_file_starts_empty(self, tmp_path):
        store = YAMLStore(tmp_path / "nested" / "db.yml")
        assert store.is_empty("tasks")
        assert not (tmp_path / "nested" / "db.yml").exists()

    def test_persists_and_reloads(self, tmp_path, board, leader, task):
        path = tmp_path / "db.yml"
        atomic_write(DATA_YAML, path, board.store.dump())

        reloaded = YAMLStore(path)
        assert reloaded.get("tasks", task.id)["title"] == "Write release notes"
        assert reloaded.count("profiles") == 2

        reloaded.update("tasks", task.id, {"status": "review"})
        assert YAMLStore(path).get("tasks", task.id)["status"] == "review"

    def test_save_writes_empty_document(self, tmp_path):
        path = tmp_path / "db.yml"
        YAMLStore(path).save()
        data = yaml.safe_load(path.read_text())
        assert data["schema_version"] == APP_SCHEMA_VERSION
        assert data["tasks"] == []

    def test_corrupt_yaml(self, tmp_path):
        path = tmp_path / "db.yml"
        path.write_text("tasks: [unclosed\n")
        with pytest.raises(CorruptionError):
            YAMLStore(path)

    def test_schema_mismatch(self, tmp_path):
        path = tmp_path / "db.yml"
        path.write_text(yaml.safe_dump({"schema_version": APP_SCHEMA_VERSION, "tasks": [{"id": "t1"}]}))
        with pytest.raises(CorruptionError, match="does not match"):
            YAMLStore(path)

    def test_old_schema_needs_migration(self, tmp_path):
        path = tmp_path / "db.yml"
        path.write_text(yaml.safe_dump({"schema_version": "0.0.1"}))
        with pytest.raises(MigrationNeededError):
            YAMLStore(path)

    def test_failed_write_rolls_back(self, tmp_path):
        store = YAMLStore(tmp_path / "db.yml")
        with patch("taskhive.data.engine.atomic_write", side_effect=FileOperationError("disk full")):
            with pytest.raises(PersistenceError, match="disk full"):
                store.insert("tasks", {"id": "t1"})
        assert store.get("tasks", "t1") is None


class TestFileHelpers:

    def test_load_missing(self, tmp_path):
        assert load_yaml_file(tmp_path / "none.yml") is None

    def test_load_non_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(CorruptionError):
            load_yaml_file(path)

    def test_atomic_write_requires_parent(self, tmp_path):
        with pytest.raises(FileOperationError):
            atomic_write(DATA_YAML, tmp_path / "missing" / "x.yml", {"a": 1})
        atomic_write(DATA_YAML, tmp_path / "made" / "x.yml", {"a": 1}, create_dirs=True)
        assert load_yaml_file(tmp_path / "made" / "x.yml") == {"a": 1}

    def test_atomic_write_leaves_no_temp_files(self, tmp_path):
        atomic_write(DATA_YAML, tmp_path / "x.yml", {"a": 1})
        assert [p.name for p in tmp_path.iterdir()] == ["x.yml"]

    def test_atomic_write_unsupported_format(self, tmp_path):
        """Only YAML is written; anything else fails without leaving files behind."""
        with pytest.raises(FatalError, match="Unsupported"):
            atomic_write(DATA_YAML + 1, tmp_path / "x.json", {"a": 1})
        assert list(tmp_path.iterdir()) == []


class TestSchemaVersion:

    def test_versions(self):
        assert check_schema_version(APP_SCHEMA_VERSION)
        with pytest.raises(MigrationNeededError):
            check_schema_version("1.0.0", "1.1.0")
        with pytest.raises(FatalError):
            check_schema_version("2.0.0", "1.1.0")
        with pytest.raises(CorruptionError):
            check_schema_version("not a version", "1.1.0")

    def test_validate_database(self):
        assert validate_database({"schema_version": APP_SCHEMA_VERSION})
        assert not validate_database({"tasks": []})
