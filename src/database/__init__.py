"""
Database package for schema creation and persistence helpers.
"""

from .content_index import ContentIndex
from .manager import DatabaseManager, db_paths_from_config
from .schema import create_databases

__all__ = [
    "ContentIndex",
    "DatabaseManager",
    "create_databases",
    "db_paths_from_config",
]
