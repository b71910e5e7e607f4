"""
Storage Backend Module

Provides abstract storage interface and implementations for in-memory (testing)
and SQLite (persistence). All monetary values stored as Decimal strings.

Mutating operations run inside a StorageSession: a unit of work that buffers
writes, holds row locks acquired in a fixed order, and applies everything to
the backend in one atomic step when the work succeeds.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple, Union
from decimal import Decimal
from datetime import datetime, timezone
import copy
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager

from .logging_config import get_logger


LockKey = Tuple[str, str]
Write = Tuple[str, str, Optional[Dict[str, Any]]]


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        # Convert datetime objects to ISO strings
        result['created_at'] = self.created_at.isoformat()
        result['updated_at'] = self.updated_at.isoformat()
        # Convert Decimal objects to strings
        for key, value in result.items():
            if isinstance(value, Decimal):
                result[key] = str(value)
        return result


class RecordLockRegistry:
    """
    Per-record locks shared by every session of one storage backend.

    Keys are (table, record_id) pairs. An entry exists only while some
    session holds or waits for it, so the registry stays as small as the
    number of rows currently in use.
    """

    def __init__(self):
        # key -> [lock, number of sessions holding or waiting]
        self._locks: Dict[LockKey, List[Any]] = {}
        self._mutex = threading.Lock()

    def acquire(self, key: LockKey) -> None:
        with self._mutex:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        entry[0].acquire()

    def release(self, key: LockKey) -> None:
        with self._mutex:
            entry = self._locks[key]
            entry[0].release()
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def is_locked(self, key: LockKey) -> bool:
        with self._mutex:
            entry = self._locks.get(key)
            return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        with self._mutex:
            return len(self._locks)


class StorageSession:
    """
    One logical unit of work against a storage backend.

    Reads see the session's own pending writes. Nothing reaches the backend
    until commit(), which applies all writes atomically. Row locks taken with
    lock() are held until close().
    """

    def __init__(self, storage: 'StorageInterface', lock_registry: RecordLockRegistry):
        self.storage = storage
        self._lock_registry = lock_registry
        self._held: List[LockKey] = []
        self._locked = False
        self._writes: Dict[LockKey, Optional[Dict[str, Any]]] = {}
        self._closed = False

    def lock(self, *keys: LockKey) -> None:
        """
        Acquire row locks for all given (table, record_id) keys.

        Locks are taken in sorted key order so that any two sessions locking
        overlapping rows always acquire them in the same sequence. All locks
        must be requested in a single call.
        """
        if self._closed:
            raise RuntimeError("Session is closed")
        if self._locked:
            raise RuntimeError("Session row locks must be acquired in a single call")
        self._locked = True

        for key in sorted(set(keys)):
            self._lock_registry.acquire(key)
            self._held.append(key)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record, preferring this session's pending write"""
        key = (table, record_id)
        if key in self._writes:
            data = self._writes[key]
            return copy.deepcopy(data) if data is not None else None
        return self.storage.load(table, record_id)

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists from this session's point of view"""
        return self.load(table, record_id) is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters, overlaid with pending writes"""
        results = []
        for record in self.storage.find(table, filters):
            if (table, record.get('id')) not in self._writes:
                results.append(record)

        for (write_table, _record_id), data in self._writes.items():
            if write_table != table or data is None:
                continue
            if all(key in data and data[key] == value for key, value in filters.items()):
                results.append(copy.deepcopy(data))

        return results

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Stage a record for saving"""
        # Round-trip through JSON so staged data matches what a load returns
        self._writes[(table, record_id)] = json.loads(json.dumps(data, default=str))

    def delete(self, table: str, record_id: str) -> bool:
        """Stage a record for deletion"""
        existed = self.exists(table, record_id)
        self._writes[(table, record_id)] = None
        return existed

    def commit(self) -> None:
        """Apply all staged writes to the backend atomically"""
        if self._writes:
            writes = [(table, record_id, data) for (table, record_id), data in self._writes.items()]
            self.storage.apply(writes)
        self._writes.clear()

    def rollback(self) -> None:
        """Discard all staged writes"""
        self._writes.clear()

    def close(self) -> None:
        """Release row locks in reverse acquisition order"""
        while self._held:
            self._lock_registry.release(self._held.pop())
        self._closed = True


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    def __init__(self):
        self.record_locks = RecordLockRegistry()

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise

    def apply(self, writes: List[Write]) -> None:
        """
        Apply a batch of writes as one atomic step.

        Each write is (table, record_id, data); data of None deletes the record.
        """
        with self.atomic():
            for table, record_id, data in writes:
                if data is None:
                    self.delete(table, record_id)
                else:
                    self.save(table, record_id, data)

    @contextmanager
    def session(self):
        """
        Open a unit of work.

        Commits staged writes when the block exits normally, discards them on
        any exception, and always releases the session's row locks.
        """
        session = StorageSession(self, self.record_locks)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if table not in self._data:
            self._data[table] = {}

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            # Deep copy to prevent external mutation
            self._data[table][record_id] = json.loads(json.dumps(data, default=str))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record:
                # Deep copy to prevent external mutation
                return json.loads(json.dumps(record))
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [json.loads(json.dumps(record)) for record in self._data[table].values()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from memory"""
        with self._lock:
            self._ensure_table(table)
            if record_id in self._data[table]:
                del self._data[table][record_id]
                return True
            return False

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            return record_id in self._data[table]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        with self._lock:
            self._ensure_table(table)
            results = []
            for record in self._data[table].values():
                match = True
                for key, value in filters.items():
                    if key not in record or record[key] != value:
                        match = False
                        break
                if match:
                    results.append(json.loads(json.dumps(record)))
            return results

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._data[table] = {}

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def apply(self, writes: List[Write]) -> None:
        """Apply a batch of writes while holding the storage lock"""
        # Serialize everything up front so the batch cannot fail half-applied
        prepared = [
            (table, record_id, None if data is None else json.loads(json.dumps(data, default=str)))
            for table, record_id, data in writes
        ]
        with self._lock:
            for table, record_id, data in prepared:
                self._ensure_table(table)
                if data is None:
                    self._data[table].pop(record_id, None)
                else:
                    self._data[table][record_id] = data


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)
        # Set isolation_level to 'DEFERRED' to enable manual transaction control
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._in_transaction = False
        self._known_tables = set()
        self.logger = get_logger("eagle_bank.storage")

        # Enable WAL mode for better concurrent access
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        with self._lock:
            if table in self._known_tables:
                return
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            # Create index on timestamps for better query performance
            self._connection.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{table}_created_at
                ON {table}(created_at)
            """)
            if not self._in_transaction:
                self._connection.commit()
            self._known_tables.add(table)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock:
            self._ensure_table(table)

            now = datetime.now(timezone.utc).isoformat()
            data_json = json.dumps(data, default=str)

            # Use INSERT OR REPLACE to handle updates
            self._connection.execute(f"""
                INSERT OR REPLACE INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?,
                    COALESCE((SELECT created_at FROM {table} WHERE id = ?), ?),
                    ?)
            """, (record_id, data_json, record_id, now, now))

            # Only commit if not in transaction
            if not self._in_transaction:
                self._connection.commit()

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (record_id,))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY created_at
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (record_id,))

            # Only commit if not in transaction
            if not self._in_transaction:
                self._connection.commit()
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (record_id,))
            return cursor.fetchone() is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY created_at
            """)

            results = []
            for row in cursor.fetchall():
                record = json.loads(row['data'])
                match = True
                for key, value in filters.items():
                    if key not in record or record[key] != value:
                        match = False
                        break
                if match:
                    results.append(record)

            return results

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")

            # Only commit if not in transaction
            if not self._in_transaction:
                self._connection.commit()

    def begin_transaction(self) -> None:
        """Start a database transaction"""
        with self._lock:
            if not self._in_transaction:
                # SQLite with isolation_level='DEFERRED' automatically starts transactions
                # We just need to track the state
                self._in_transaction = True

    def commit(self) -> None:
        """Commit current transaction"""
        with self._lock:
            if self._in_transaction:
                self._connection.commit()
                self._in_transaction = False

    def rollback(self) -> None:
        """Rollback current transaction"""
        with self._lock:
            if self._in_transaction:
                self._connection.rollback()
                self._in_transaction = False

    def apply(self, writes: List[Write]) -> None:
        """Apply a batch of writes inside one SQL transaction"""
        with self._lock:
            # DDL must not run inside the batch transaction
            for table in {table for table, _, _ in writes}:
                self._ensure_table(table)
            try:
                super().apply(writes)
            except sqlite3.Error:
                self.logger.exception("SQLite batch write rolled back")
                raise

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str) -> StorageInterface:
    """
    Create a storage backend from a database URL.

    Supported forms: ``memory://``, ``sqlite://`` (in-memory SQLite) and
    ``sqlite:///path/to/file.db``.
    """
    if database_url == "memory://":
        return InMemoryStorage()
    if database_url.startswith("sqlite://"):
        path = database_url[len("sqlite://"):]
        if path.startswith("/"):
            path = path[1:]
        return SQLiteStorage(path or ":memory:")
    raise ValueError(f"Unsupported database URL: {database_url}")
