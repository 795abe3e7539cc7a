"""SQLite-backed store of path records."""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .exceptions import StoreClosedError
from .models import PathRecord, Status

logger = logging.getLogger(__name__)


class PathRecordStore:
    """
    Durable keyed storage of one record per known file path.

    Features:
    - Upsert by path
    - Lookup by status for retry sweeps
    - Thread-safe operations over a single connection
    """

    def __init__(self, db_path: Union[str, Path], table_name: str = "path_records"):
        """
        Initialize the record store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:"
            table_name: Name of the table holding the records
        """
        self.db_path = db_path
        self.table_name = table_name
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._closed = False

        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        self._conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        if str(self.db_path) != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")

        self._conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table_name} (
                path TEXT PRIMARY KEY,
                external_id TEXT,
                modified REAL NOT NULL DEFAULT 0,
                status INTEGER NOT NULL
            )
        """)
        self._conn.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{self.table_name}_status
            ON {self.table_name}(status)
        """)

    def _check_closed(self) -> None:
        if self._closed:
            raise StoreClosedError("Store is closed")

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> PathRecord:
        return PathRecord(
            path=row["path"],
            external_id=row["external_id"],
            modified=row["modified"],
            status=Status(row["status"]),
        )

    def find_by_path(self, path: Union[str, Path]) -> Optional[PathRecord]:
        """
        Get the record for a path.

        Args:
            path: Absolute path of the file

        Returns:
            The record, or None if the path is unknown
        """
        self._check_closed()

        with self._lock:
            row = self._conn.execute(
                f"SELECT path, external_id, modified, status FROM {self.table_name} WHERE path = ?",
                (str(path),)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def save(self, record: PathRecord) -> None:
        """
        Insert or replace the record for its path.

        Args:
            record: Record to persist
        """
        self._check_closed()

        with self._lock:
            self._conn.execute(
                f"INSERT OR REPLACE INTO {self.table_name} (path, external_id, modified, status) VALUES (?, ?, ?, ?)",
                (record.path, record.external_id, record.modified, record.status.value)
            )

    def delete_by_path(self, path: Union[str, Path]) -> bool:
        """
        Remove the record for a path.

        Args:
            path: Absolute path of the file

        Returns:
            True if a record was removed
        """
        self._check_closed()

        with self._lock:
            cursor = self._conn.execute(
                f"DELETE FROM {self.table_name} WHERE path = ?",
                (str(path),)
            )
            return cursor.rowcount > 0

    def find_by_status(self, status: Status) -> List[PathRecord]:
        """
        Get every record with the given status.

        Args:
            status: Status to filter on

        Returns:
            List of records ordered by path
        """
        self._check_closed()

        with self._lock:
            rows = self._conn.execute(
                f"SELECT path, external_id, modified, status FROM {self.table_name} WHERE status = ? ORDER BY path",
                (status.value,)
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def find_all(self) -> Iterator[PathRecord]:
        """
        Iterate over every stored record.

        The rows are fetched up front so callers may modify the store while
        iterating.
        """
        self._check_closed()

        with self._lock:
            rows = self._conn.execute(
                f"SELECT path, external_id, modified, status FROM {self.table_name} ORDER BY path"
            ).fetchall()
        return iter([self._row_to_record(row) for row in rows])

    def count(self) -> int:
        """Return the total number of records."""
        self._check_closed()

        with self._lock:
            return self._conn.execute(
                f"SELECT COUNT(*) FROM {self.table_name}"
            ).fetchone()[0]

    def count_by_status(self) -> Dict[Status, int]:
        """
        Count records per status.

        Returns:
            Mapping covering every status, zero when absent
        """
        self._check_closed()

        counts = {status: 0 for status in Status}
        with self._lock:
            rows = self._conn.execute(
                f"SELECT status, COUNT(*) AS n FROM {self.table_name} GROUP BY status"
            ).fetchall()
        for row in rows:
            counts[Status(row["status"])] = row["n"]
        return counts

    def close(self) -> None:
        """Close the store and release resources."""
        if self._closed:
            return

        self._closed = True
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __len__(self) -> int:
        return self.count()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
