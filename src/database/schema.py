"""
Database schema definitions for the storage engine.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict


def create_databases(db_paths: Dict[str, Path]) -> None:
    """Create all SQLite databases and their tables."""
    create_access_grants_db(db_paths["access_grants"])
    create_content_index_db(db_paths["content_index"])
    create_state_db(db_paths["state"])


def create_access_grants_db(db_path: Path) -> None:
    """Create the capability grant database; one grant per root."""
    conn = _connect(db_path)
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS access_grants (
            id INTEGER PRIMARY KEY,
            root_path TEXT UNIQUE,
            token TEXT,
            fingerprint TEXT,
            granted_at TIMESTAMP
        )
        """
    )
    conn.commit()
    conn.close()


def create_content_index_db(db_path: Path) -> None:
    """Create the content index kept consistent by index invalidation calls."""
    conn = _connect(db_path)
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS content_index (
            id INTEGER PRIMARY KEY,
            file_path TEXT UNIQUE,
            is_directory BOOLEAN,
            indexed_at TIMESTAMP
        )
        """
    )
    conn.commit()
    conn.close()


def create_state_db(db_path: Path) -> None:
    """Create the state database for the operation journal."""
    conn = _connect(db_path)
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS operations (
            id INTEGER PRIMARY KEY,
            operation_id TEXT UNIQUE,
            operation_type TEXT,
            status TEXT,
            started_at TIMESTAMP,
            finished_at TIMESTAMP,
            attempts INTEGER,
            details TEXT
        )
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_operations_status ON operations(status)")
    conn.commit()
    conn.close()


def _connect(db_path: Path) -> sqlite3.Connection:
    """Create a SQLite connection with WAL enabled."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn
