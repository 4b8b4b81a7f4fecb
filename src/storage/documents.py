"""
Granted document trees.

A path is only reachable through the sandboxed strategy if a persisted grant
covers it. Resolution starts at the grant root and walks one segment at a
time, creating missing segments when the caller asks for it. A segment that
can be neither found nor created means the grant does not reach that far.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional, Protocol

from .models import AccessGrant
from .paths import delete_tree, fingerprint_of, list_children, relative_segments


class GrantLookup(Protocol):
    def find_grant(self, path: Path) -> Optional[AccessGrant]: ...


class Document:
    """A node inside a granted tree."""

    def __init__(self, path: Path, logger: Optional[logging.Logger] = None) -> None:
        self.path = path
        self.logger = logger or logging.getLogger("file_ops")

    def __repr__(self) -> str:
        return f"Document({str(self.path)!r})"

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_directory(self) -> bool:
        return self.path.is_dir() and not self.path.is_symlink()

    def exists(self) -> bool:
        return os.path.lexists(self.path)

    def can_write(self) -> bool:
        return self.exists() and os.access(self.path, os.W_OK)

    def children(self) -> list["Document"]:
        return [Document(child, self.logger) for child in list_children(self.path)]

    def find_file(self, name: str) -> Optional["Document"]:
        child = self.path / name
        if not os.path.lexists(child):
            return None
        return Document(child, self.logger)

    def create_file(self, name: str) -> Optional["Document"]:
        if not self.is_directory:
            return None
        child = self.path / name
        try:
            with open(child, "xb"):
                pass
        except FileExistsError:
            return Document(child, self.logger) if child.is_file() else None
        except OSError as exc:
            self.logger.warning("Could not create document %s: %s", child, exc)
            return None
        return Document(child, self.logger)

    def create_directory(self, name: str) -> Optional["Document"]:
        if not self.is_directory:
            return None
        child = self.path / name
        try:
            child.mkdir()
        except FileExistsError:
            return Document(child, self.logger) if child.is_dir() else None
        except OSError as exc:
            self.logger.warning("Could not create directory document %s: %s", child, exc)
            return None
        return Document(child, self.logger)

    def open_output(self) -> BinaryIO:
        """Open the document for writing from scratch. Raises OSError."""
        return open(self.path, "wb")

    def delete(self) -> bool:
        return delete_tree(self.path)

    def rename_to(self, name: str) -> Optional["Document"]:
        """Rename inside the same parent; an existing sibling is never replaced."""
        destination = self.path.parent / name
        if os.path.lexists(destination):
            return None
        try:
            os.rename(self.path, destination)
        except OSError as exc:
            self.logger.warning("Could not rename document %s to %s: %s", self.path, name, exc)
            return None
        return Document(destination, self.logger)


class DocumentTree:
    """Resolve paths to documents through the persisted grants."""

    def __init__(self, grants: GrantLookup, logger: Optional[logging.Logger] = None) -> None:
        self.grants = grants
        self.logger = logger or logging.getLogger("file_ops")

    def root_for(self, path: Path) -> Optional[Document]:
        """Root document of the grant covering path, or None if no valid grant does."""
        grant = self.grants.find_grant(path)
        if grant is None:
            self.logger.warning("No access grant covers %s", path)
            return None
        if grant.fingerprint and grant.fingerprint != fingerprint_of(grant.root):
            self.logger.warning("Access grant for %s no longer matches the tree on disk", grant.root)
            return None
        return Document(grant.root, self.logger)

    def find(self, path: Path) -> Optional[Document]:
        return self._seek_or_create(path, create=False, as_file=False)

    def create_file(self, path: Path) -> Optional[Document]:
        return self._seek_or_create(path, create=True, as_file=True)

    def create_directory(self, path: Path) -> Optional[Document]:
        return self._seek_or_create(path, create=True, as_file=False)

    def _seek_or_create(self, path: Path, create: bool, as_file: bool) -> Optional[Document]:
        path = Path(os.path.abspath(path))
        document = self.root_for(path)
        if document is None:
            return None

        root_path = document.path
        segments = relative_segments(root_path, path)
        for index, segment in enumerate(segments):
            is_last = index == len(segments) - 1
            next_document = document.find_file(segment)
            if next_document is None and create:
                if is_last and as_file:
                    next_document = document.create_file(segment)
                else:
                    next_document = document.create_directory(segment)
            if next_document is None:
                self.logger.warning(
                    "Segment %r of %s is out of reach of the grant at %s",
                    segment,
                    path,
                    root_path,
                )
                return None
            if not self._has_expected_kind(next_document, is_last, create, as_file):
                self.logger.warning(
                    "Segment %r of %s exists but is not a %s",
                    segment,
                    path,
                    "file" if is_last and as_file else "directory",
                )
                return None
            document = next_document
        return document

    @staticmethod
    def _has_expected_kind(document: Document, is_last: bool, create: bool, as_file: bool) -> bool:
        # Lookups accept any final document; creation only accepts the kind asked for.
        if not is_last:
            return document.is_directory
        if not create:
            return True
        return not document.is_directory if as_file else document.is_directory

    def saf_aware_delete(self, path: Path) -> bool:
        """Delete path directly, falling back to the granted document."""
        deleted = delete_tree(path)
        if not deleted and os.path.lexists(path):
            document = self.find(path)
            if document is not None:
                deleted = document.delete()
        return deleted and not os.path.lexists(path)
