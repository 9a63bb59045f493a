"""
Storage engines for TaskHive.

Every engine offers the same small CRUD contract over named tables of plain
dict records: insert-returning-record, update-by-id, select-with-filter-and-order
and select-by-id-or-null. Records are JSON-compatible dicts; the stores turn
them into pydantic models.
"""
import abc
import copy
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from taskhive.logs import get_logger
from taskhive.models import TABLES
from taskhive.recovery import (
    CorruptionError,
    FatalError,
    FileOperationError,
    NotFound,
    PersistenceError,
)
from taskhive.version import APP_SCHEMA_VERSION
from .io import atomic_write, load_yaml_file, DATA_YAML
from .validate import validate_database, check_schema_version

log = get_logger("data.engine")

# Columns that must be unique within their table, besides the id.
UNIQUE: Dict[str, Tuple[str, ...]] = {
    "accounts": ("email",),
    "profiles": ("user_id",),
    "user_roles": ("user_id",),
    "task_documentation": ("task_id",),
}

Where = Optional[Dict[str, Any]]


def _matches(record: Dict, where: Where) -> bool:
    if not where:
        return True
    for field, expected in where.items():
        value = record.get(field)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class DataStore(abc.ABC):
    """Generic CRUD contract consumed by the stores."""

    @abc.abstractmethod
    def insert(self, table: str, record: Dict) -> Dict:
        """Insert a record and return it as stored."""

    @abc.abstractmethod
    def update(self, table: str, record_id: str, changes: Dict) -> Dict:
        """Apply changes to the record with the given id and return it."""

    @abc.abstractmethod
    def select(self, table: str, where: Where = None, order_by: Optional[str] = None, descending: bool = False) -> List[Dict]:
        """Return records matching ``where`` (field equality, or membership for collections)."""

    @abc.abstractmethod
    def get(self, table: str, record_id: str) -> Optional[Dict]:
        """Return the record with the given id, or None."""

    def select_one(self, table: str, where: Where) -> Optional[Dict]:
        rows = self.select(table, where)
        return rows[0] if rows else None

    def count(self, table: str, where: Where = None) -> int:
        return len(self.select(table, where))

    def is_empty(self, table: str) -> bool:
        return self.count(table) == 0


class MemoryStore(DataStore):
    """
    Ephemeral store keeping every table as a list of dicts.

    Insertion order is kept, and used as the tie breaker when ordering, so
    records created within the same clock tick still sort deterministically.
    Returned records are copies; mutating them never changes the store.
    """

    def __init__(self, tables: Optional[Dict[str, List[Dict]]] = None):
        self._tables: Dict[str, List[Dict]] = {name: [] for name in TABLES}
        for name, rows in (tables or {}).items():
            self._table(name).extend(copy.deepcopy(rows))

    def _table(self, table: str) -> List[Dict]:
        if table not in self._tables:
            raise PersistenceError(f'relation "{table}" does not exist')
        return self._tables[table]

    def _check_unique(self, table: str, record: Dict, ignore_id: Optional[str] = None):
        for row in self._table(table):
            if row.get("id") == ignore_id:
                continue
            if row.get("id") == record.get("id"):
                raise PersistenceError(f'duplicate key value violates unique constraint "{table}_pkey"')
            for column in UNIQUE.get(table, ()):
                if column in record and row.get(column) == record[column]:
                    raise PersistenceError(f'duplicate key value violates unique constraint "{table}_{column}_key"')

    def _persist(self):
        """Hook for durable engines; called after every mutation."""

    def _mutate(self, action):
        before = copy.deepcopy(self._tables)
        try:
            result = action()
            self._persist()
            return result
        except (FileOperationError, FatalError) as e:
            self._tables = before
            raise PersistenceError(str(e)) from e

    def insert(self, table: str, record: Dict) -> Dict:
        record = copy.deepcopy(record)
        if not record.get("id"):
            raise PersistenceError(f'null value in column "id" of relation "{table}"')

        def action():
            self._check_unique(table, record)
            self._table(table).append(record)
            return copy.deepcopy(record)

        stored = self._mutate(action)
        log.debug(f"Inserted {table} id={stored['id']}")
        return stored

    def update(self, table: str, record_id: str, changes: Dict) -> Dict:
        changes = copy.deepcopy(changes)
        if "id" in changes and changes["id"] != record_id:
            raise PersistenceError(f"Cannot change the id of a {table} record")

        def action():
            rows = self._table(table)
            for index, row in enumerate(rows):
                if row.get("id") == record_id:
                    updated = {**row, **changes}
                    self._check_unique(table, updated, ignore_id=record_id)
                    rows[index] = updated
                    return copy.deepcopy(updated)
            raise NotFound(f"No {table} record with id {record_id}")

        stored = self._mutate(action)
        log.debug(f"Updated {table} id={record_id} fields={sorted(changes)}")
        return stored

    def select(self, table: str, where: Where = None, order_by: Optional[str] = None, descending: bool = False) -> List[Dict]:
        indexed = [(i, row) for i, row in enumerate(self._table(table)) if _matches(row, where)]
        if order_by:
            indexed.sort(key=lambda pair: (pair[1].get(order_by) is None, pair[1].get(order_by) or "", pair[0]), reverse=descending)
        return [copy.deepcopy(row) for _, row in indexed]

    def get(self, table: str, record_id: str) -> Optional[Dict]:
        for row in self._table(table):
            if row.get("id") == record_id:
                return copy.deepcopy(row)
        return None

    def dump(self) -> Dict[str, Any]:
        """The whole database as a store-file document."""
        return {"schema_version": APP_SCHEMA_VERSION, **copy.deepcopy(self._tables)}


class YAMLStore(MemoryStore):
    """
    MemoryStore that mirrors every mutation to a YAML file.

    The whole document is rewritten atomically after each insert or update.
    A failed write rolls the in-memory tables back and surfaces as
    PersistenceError. There is no cross-process locking: two processes
    writing the same file follow last-write-wins.
    """

    def __init__(self, path: Union[Path, str], create_dirs: bool = True):
        self.path = Path(path)
        self.create_dirs = create_dirs
        data = load_yaml_file(self.path)
        if data is None:
            log.info(f"No store file at {self.path}; starting empty")
            super().__init__()
            return

        check_schema_version(data.get("schema_version", "0.0.0"))
        if not validate_database(data):
            raise CorruptionError(f"Store file {self.path} does not match the store schema")

        super().__init__({name: rows or [] for name, rows in data.items() if name in TABLES})
        log.info(f"Loaded store {self.path} ({sum(len(rows) for rows in self._tables.values())} records)")

    def _persist(self):
        atomic_write(DATA_YAML, self.path, self.dump(), create_dirs=self.create_dirs)

    def save(self):
        """Write the current tables even if nothing changed (used by init)."""
        self._mutate(lambda: None)
