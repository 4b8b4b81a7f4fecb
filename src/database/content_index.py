"""
Content index kept in step with storage mutations.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .manager import DatabaseManager


class ContentIndex:
    """Index invalidation sink that mirrors additions and removals into SQLite."""

    def __init__(self, db_manager: DatabaseManager, logger: Optional[logging.Logger] = None) -> None:
        self.db_manager = db_manager
        self.logger = logger or logging.getLogger("file_ops.movement")

    def paths_removed(self, paths: Iterable[str]) -> None:
        paths = list(paths)
        if not paths:
            return
        removed = self.db_manager.index_remove(paths)
        self.logger.info("Index removed %s paths (%s were indexed)", len(paths), removed)

    def path_added(self, path: str, is_directory: bool) -> None:
        self.db_manager.index_add(str(path), is_directory)
        self.logger.info("Index added %s%s", path, "/" if is_directory else "")
