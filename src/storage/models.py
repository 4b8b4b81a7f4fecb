"""
Value types shared by the tree, archive and operation layers.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path


def new_operation_id() -> str:
    """Return an opaque identifier for one invocation and all of its retries."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class FileHandle:
    """Absolute path plus the metadata captured when the operation was prepared."""

    path: Path
    is_directory: bool
    name: str
    last_modified: float

    @classmethod
    def from_path(cls, path: Path | str) -> "FileHandle":
        absolute = Path(os.path.abspath(os.fspath(path)))
        try:
            stat = absolute.stat()
            is_directory = absolute.is_dir()
            last_modified = stat.st_mtime
        except OSError:
            is_directory = False
            last_modified = 0.0
        return cls(
            path=absolute,
            is_directory=is_directory,
            name=absolute.name,
            last_modified=last_modified,
        )


@dataclass
class ProgressCounter:
    """Running (completed, total) for one attempt of one operation."""

    total: int = 0
    completed: int = 0

    def advance(self, count: int = 1) -> int:
        self.completed += count
        return self.completed

    @property
    def finished(self) -> bool:
        return self.completed == self.total


@dataclass(frozen=True)
class AccessGrant:
    """A persisted capability rooted at a storage subtree."""

    root: Path
    token: str
    fingerprint: str
    granted_at: str = ""

    def covers(self, path: Path) -> bool:
        """Return True when path is the grant root or lies underneath it."""
        return is_same_or_ancestor(self.root, path)


@dataclass(frozen=True)
class ArchiveEntry:
    """Metadata for one record of a zip container; data is streamed separately."""

    relative_path: str
    is_directory: bool
    modified_time: float
    size: int = 0

    def __post_init__(self) -> None:
        if self.is_directory and not self.relative_path.endswith("/"):
            raise ValueError(f"Directory entry must end with '/': {self.relative_path!r}")


def is_safe_relative_path(name: str) -> bool:
    """Forward-slash relative path with no '..' segments and no absolute prefix."""
    if not name or "\\" in name or name.startswith("/"):
        return False
    if len(name) > 1 and name[1] == ":":
        return False
    return all(segment != ".." for segment in name.split("/"))


def is_same_or_ancestor(ancestor: Path, path: Path) -> bool:
    ancestor_value = os.path.normcase(os.path.normpath(str(ancestor)))
    path_value = os.path.normcase(os.path.normpath(str(path)))
    if path_value == ancestor_value:
        return True
    return path_value.startswith(ancestor_value.rstrip(os.sep) + os.sep)
