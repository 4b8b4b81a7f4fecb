"""
Primitive mutations for each access strategy.

Tree and archive algorithms are written once against ``StorageBackend``; the
direct backend touches raw paths and the document backend goes through the
granted document tree.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Optional

from .documents import DocumentTree
from .paths import delete_tree


class StorageBackend(ABC):
    """Primitive operations the tree and archive code builds on."""

    name = "abstract"
    moves_by_rename = True

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("file_ops")

    @abstractmethod
    def open_output(self, path: Path) -> BinaryIO:
        """Create (or truncate) a file and open it for writing. Raises OSError."""

    @abstractmethod
    def make_directory(self, path: Path) -> bool:
        """Create one directory; True if it exists afterwards."""

    @abstractmethod
    def make_directories(self, path: Path) -> bool:
        """Create a directory and any missing ancestors; True if it exists afterwards."""

    @abstractmethod
    def delete(self, path: Path) -> bool:
        """Delete a file or a whole directory tree."""

    @abstractmethod
    def rename(self, source: Path, destination: Path) -> bool:
        """Rename source to destination without replacing an existing entry."""

    def set_modified_time(self, path: Path, timestamp: float) -> bool:
        try:
            os.utime(path, (timestamp, timestamp))
        except OSError as exc:
            self.logger.warning("Could not set modification time of %s: %s", path, exc)
            return False
        return True


class DirectBackend(StorageBackend):
    name = "direct"

    def open_output(self, path: Path) -> BinaryIO:
        return open(path, "wb")

    def make_directory(self, path: Path) -> bool:
        if path.is_dir():
            return True
        try:
            path.mkdir()
        except OSError as exc:
            self.logger.warning("Could not create directory %s: %s", path, exc)
            return False
        return True

    def make_directories(self, path: Path) -> bool:
        if path.is_dir():
            return True
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self.logger.warning("Could not create directory %s: %s", path, exc)
            return False
        return True

    def delete(self, path: Path) -> bool:
        return delete_tree(path)

    def rename(self, source: Path, destination: Path) -> bool:
        if os.path.lexists(destination):
            self.logger.warning("Rename target already exists: %s", destination)
            return False
        try:
            os.rename(source, destination)
        except OSError as exc:
            self.logger.warning("Rename failed: %s -> %s (%s)", source, destination, exc)
            return False
        return True


class DocumentBackend(StorageBackend):
    """Mutations through granted documents; a document can only be renamed in place."""

    name = "sandboxed"
    moves_by_rename = False

    def __init__(self, documents: DocumentTree, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(logger)
        self.documents = documents

    def open_output(self, path: Path) -> BinaryIO:
        document = self.documents.create_file(path)
        if document is None:
            raise PermissionError(f"No granted document could be created for {path}")
        return document.open_output()

    def make_directory(self, path: Path) -> bool:
        return path.is_dir() or self.documents.create_directory(path) is not None

    def make_directories(self, path: Path) -> bool:
        return self.make_directory(path)

    def delete(self, path: Path) -> bool:
        return self.documents.saf_aware_delete(path)

    def rename(self, source: Path, destination: Path) -> bool:
        if Path(os.path.abspath(source)).parent != Path(os.path.abspath(destination)).parent:
            return False
        document = self.documents.find(source)
        if document is None:
            return False
        return document.rename_to(destination.name) is not None
