"""
SQLite access layer for capability grants, the content index and the operation journal.
"""

from __future__ import annotations

import json
import os
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional

from config import AppConfig
from storage.models import AccessGrant, is_same_or_ancestor
from storage.paths import fingerprint_of

from .schema import create_databases


def db_paths_from_config(config: AppConfig) -> Dict[str, Path]:
    """Resolve database file locations, defaulting to the data/ directory."""
    return {
        "access_grants": config.resolve_path(
            "databases", "access_grants", default="data/access_grants.sqlite"
        ),
        "content_index": config.resolve_path(
            "databases", "content_index", default="data/content_index.sqlite"
        ),
        "state": config.resolve_path("databases", "state", default="data/state.sqlite"),
    }


class DatabaseManager:
    """Manage SQLite connections and common queries."""

    def __init__(self, db_paths: Dict[str, Path]) -> None:
        self.db_paths = db_paths
        self._lock = threading.RLock()
        self._grants_conn: Optional[sqlite3.Connection] = None
        self._index_conn: Optional[sqlite3.Connection] = None
        self._state_conn: Optional[sqlite3.Connection] = None

    def initialize(self) -> None:
        """Create database files and tables."""
        create_databases(self.db_paths)

    def connect(self) -> None:
        """Open database connections if they are not already open."""
        with self._lock:
            if self._grants_conn is None:
                self._grants_conn = sqlite3.connect(self.db_paths["access_grants"], check_same_thread=False)
                self._grants_conn.execute("PRAGMA journal_mode=WAL;")
            if self._index_conn is None:
                self._index_conn = sqlite3.connect(self.db_paths["content_index"], check_same_thread=False)
                self._index_conn.execute("PRAGMA journal_mode=WAL;")
            if self._state_conn is None:
                self._state_conn = sqlite3.connect(self.db_paths["state"], check_same_thread=False)
                self._state_conn.execute("PRAGMA journal_mode=WAL;")

    def close(self) -> None:
        """Close any open database connections."""
        with self._lock:
            if self._grants_conn is not None:
                self._grants_conn.close()
                self._grants_conn = None
            if self._index_conn is not None:
                self._index_conn.close()
                self._index_conn = None
            if self._state_conn is not None:
                self._state_conn.close()
                self._state_conn = None

    # Access grants

    def persist_grant(self, root: Path, token: str) -> AccessGrant:
        """Store a grant for root, replacing any earlier grant on the same root."""
        self.connect()
        root = Path(os.path.abspath(root))
        grant = AccessGrant(
            root=root,
            token=token,
            fingerprint=fingerprint_of(root),
            granted_at=datetime.utcnow().isoformat(),
        )
        with self._lock:
            self._grants_conn.execute(
                """
                INSERT INTO access_grants (root_path, token, fingerprint, granted_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(root_path) DO UPDATE SET
                    token = excluded.token,
                    fingerprint = excluded.fingerprint,
                    granted_at = excluded.granted_at
                """,
                (str(grant.root), grant.token, grant.fingerprint, grant.granted_at),
            )
            self._grants_conn.commit()
        return grant

    def list_grants(self) -> list[AccessGrant]:
        """Return every persisted grant, most specific root first."""
        self.connect()
        with self._lock:
            rows = self._grants_conn.execute(
                "SELECT root_path, token, fingerprint, granted_at FROM access_grants"
            ).fetchall()
        grants = [
            AccessGrant(
                root=Path(row[0]),
                token=str(row[1]) if row[1] else "",
                fingerprint=str(row[2]) if row[2] else "",
                granted_at=str(row[3]) if row[3] else "",
            )
            for row in rows
        ]
        grants.sort(key=lambda grant: len(str(grant.root)), reverse=True)
        return grants

    def find_grant(self, path: Path) -> Optional[AccessGrant]:
        """Return the grant with the deepest root that contains path."""
        for grant in self.list_grants():
            if is_same_or_ancestor(grant.root, path):
                return grant
        return None

    def revoke_grant(self, root: Path) -> bool:
        """Remove the grant for root; returns whether one existed."""
        self.connect()
        with self._lock:
            cursor = self._grants_conn.execute(
                "DELETE FROM access_grants WHERE root_path = ?",
                (str(Path(os.path.abspath(root))),),
            )
            self._grants_conn.commit()
        return cursor.rowcount > 0

    # Content index

    def index_add(self, file_path: str, is_directory: bool) -> None:
        self.connect()
        with self._lock:
            self._index_conn.execute(
                """
                INSERT INTO content_index (file_path, is_directory, indexed_at)
                VALUES (?, ?, ?)
                ON CONFLICT(file_path) DO UPDATE SET
                    is_directory = excluded.is_directory,
                    indexed_at = excluded.indexed_at
                """,
                (file_path, int(is_directory), datetime.utcnow().isoformat()),
            )
            self._index_conn.commit()

    def index_remove(self, file_paths: Iterable[str]) -> int:
        """Drop paths from the content index and return how many rows went away."""
        self.connect()
        removed = 0
        with self._lock:
            for chunk in _chunked(list(file_paths), 500):
                placeholders = ",".join("?" for _ in chunk)
                cursor = self._index_conn.execute(
                    f"DELETE FROM content_index WHERE file_path IN ({placeholders})",
                    tuple(chunk),
                )
                removed += cursor.rowcount
            self._index_conn.commit()
        return removed

    def index_contains(self, file_path: str) -> bool:
        self.connect()
        with self._lock:
            cursor = self._index_conn.execute(
                "SELECT 1 FROM content_index WHERE file_path = ? LIMIT 1",
                (file_path,),
            )
            return cursor.fetchone() is not None

    def count_index(self) -> int:
        self.connect()
        with self._lock:
            row = self._index_conn.execute("SELECT COUNT(*) FROM content_index").fetchone()
        return int(row[0]) if row else 0

    # Operation journal

    def start_operation(self, operation_id: str, operation_type: str, details: Optional[dict] = None) -> None:
        """Record an attempt of an operation; retries of the same ID bump the attempt count."""
        self.connect()
        details_json = json.dumps(details) if details is not None else None
        with self._lock:
            self._state_conn.execute(
                """
                INSERT INTO operations (
                    operation_id, operation_type, status, started_at, attempts, details
                ) VALUES (?, ?, 'in_progress', ?, 1, ?)
                ON CONFLICT(operation_id) DO UPDATE SET
                    status = 'in_progress',
                    attempts = operations.attempts + 1
                """,
                (operation_id, operation_type, datetime.utcnow().isoformat(), details_json),
            )
            self._state_conn.commit()

    def complete_operation(self, operation_id: str, status: str = "completed") -> None:
        """Mark an operation as completed, failed or denied."""
        self.connect()
        with self._lock:
            self._state_conn.execute(
                """
                UPDATE operations
                SET status = ?, finished_at = ?
                WHERE operation_id = ?
                """,
                (status, datetime.utcnow().isoformat(), operation_id),
            )
            self._state_conn.commit()

    def get_operation(self, operation_id: str) -> Optional[dict]:
        self.connect()
        with self._lock:
            row = self._state_conn.execute(
                """
                SELECT operation_id, operation_type, status, started_at, finished_at, attempts, details
                FROM operations
                WHERE operation_id = ?
                """,
                (operation_id,),
            ).fetchone()
        if row is None:
            return None
        return _operation_row(row)

    def list_recent_operations(self, limit: int = 20) -> list[dict]:
        """List recent operations sorted by start time."""
        self.connect()
        with self._lock:
            cursor = self._state_conn.execute(
                """
                SELECT operation_id, operation_type, status, started_at, finished_at, attempts, details
                FROM operations
                ORDER BY started_at DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cursor.fetchall()
        return [_operation_row(row) for row in rows]


def _operation_row(row: tuple) -> dict:
    return {
        "operation_id": row[0],
        "operation_type": row[1],
        "status": row[2],
        "started_at": row[3],
        "finished_at": row[4],
        "attempts": int(row[5]) if row[5] is not None else 0,
        "details": json.loads(row[6]) if row[6] else None,
    }


def _chunked(values: list[str], size: int) -> Iterable[list[str]]:
    for index in range(0, len(values), size):
        yield values[index : index + size]
