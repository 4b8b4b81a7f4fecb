"""
Recursive copy, move and delete plus the single-step rename and mkdir.

Every routine works against a ``StorageBackend`` so the same code serves the
direct and the sandboxed strategy. Individual item failures are logged and
folded into the returned flag; they never stop sibling items.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from utils import ResourceMonitor

from .backends import StorageBackend
from .collaborators import IndexInvalidation
from .models import FileHandle, ProgressCounter, is_same_or_ancestor
from .paths import count_files_under, list_children, paths_under, unique_copy_name

COPY_BUFFER_SIZE = 32 * 1024

# (counter, item being processed, directory it goes into)
ProgressCallback = Callable[[ProgressCounter, Path, Path], None]


class _SilentIndex:
    def paths_removed(self, paths: Iterable[str]) -> None:
        pass

    def path_added(self, path: str, is_directory: bool) -> None:
        pass


class Copier:
    """Copy files and directory trees into a destination directory."""

    def __init__(
        self,
        backend: StorageBackend,
        index: Optional[IndexInvalidation] = None,
        on_progress: Optional[ProgressCallback] = None,
        buffer_size: int = COPY_BUFFER_SIZE,
        monitor: Optional[ResourceMonitor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.backend = backend
        self.index = index or _SilentIndex()
        self.on_progress = on_progress
        self.buffer_size = max(buffer_size, 1)
        self.monitor = monitor
        self.logger = logger or logging.getLogger("file_ops")

    def copy(self, sources: Sequence[FileHandle], dest_dir: Path) -> bool:
        """Copy every source into dest_dir.

        True iff every file under the sources was copied and every directory
        of their trees exists at the destination.
        """
        counter = ProgressCounter(total=count_files_under(sources))
        all_created = True
        for origin in sources:
            if origin.is_directory and is_same_or_ancestor(origin.path, dest_dir):
                self.logger.error("Cannot copy %s into itself (%s)", origin.path, dest_dir)
                all_created = False
                continue
            destination = unique_copy_name(dest_dir, origin.name, origin.is_directory)
            all_created &= self._copy_file_or_directory(counter, origin.path, destination)
            if os.path.lexists(destination):
                self.index.path_added(str(destination), origin.is_directory)

        if counter.completed != counter.total:
            self.logger.warning(
                "Copied %s of %s files into %s", counter.completed, counter.total, dest_dir
            )
        return all_created and counter.completed == counter.total

    def _copy_file_or_directory(self, counter: ProgressCounter, old: Path, new: Path) -> bool:
        if old.is_dir() and not old.is_symlink():
            return self._copy_directory(counter, old, new)
        return self._copy_file(counter, old, new)

    def _copy_directory(self, counter: ProgressCounter, old: Path, new: Path) -> bool:
        if not new.is_dir() and not (self.backend.make_directory(new) and new.is_dir()):
            self.logger.warning("Copy failed: directory %s was not created", new)
            return False
        all_copied = True
        for child in list_children(old):
            all_copied &= self._copy_file_or_directory(counter, child, new / child.name)
        return all_copied

    def _copy_file(self, counter: ProgressCounter, old: Path, new: Path) -> bool:
        if self.on_progress is not None:
            self.on_progress(counter, old, new.parent)
        if self.monitor is not None:
            self.monitor.throttle()
        try:
            with open(old, "rb") as source, self.backend.open_output(new) as target:
                while True:
                    chunk = source.read(self.buffer_size)
                    if not chunk:
                        break
                    target.write(chunk)
        except OSError as exc:
            self.logger.warning("Copy failed: %s -> %s (%s)", old, new, exc)
            return False
        counter.advance()
        return True


class Mover:
    """Move top-level items into a directory.

    Backends that can rename across directories do so. Otherwise each item
    is copied and the source is deleted only when its whole tree was copied.
    """

    def __init__(
        self,
        backend: StorageBackend,
        index: Optional[IndexInvalidation] = None,
        on_progress: Optional[ProgressCallback] = None,
        buffer_size: int = COPY_BUFFER_SIZE,
        monitor: Optional[ResourceMonitor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.backend = backend
        self.index = index or _SilentIndex()
        self.on_progress = on_progress
        self.buffer_size = buffer_size
        self.monitor = monitor
        self.logger = logger or logging.getLogger("file_ops")

    def move(self, sources: Sequence[FileHandle], dest_dir: Path) -> bool:
        all_succeeded = True
        counter = ProgressCounter(total=len(sources))
        for handle in sources:
            if self.on_progress is not None:
                self.on_progress(counter, handle.path, dest_dir)
            destination = dest_dir / handle.name
            paths = paths_under(handle.path)

            moved = self._move_single(handle, destination)
            if moved:
                self.index.paths_removed(paths)
                self.index.path_added(str(destination), handle.is_directory)

            counter.advance()
            all_succeeded &= moved
        return all_succeeded

    def _move_single(self, handle: FileHandle, destination: Path) -> bool:
        if os.path.lexists(destination):
            self.logger.warning("Move target already exists: %s", destination)
            return False
        if handle.is_directory and is_same_or_ancestor(handle.path, destination.parent):
            self.logger.error("Cannot move %s into itself (%s)", handle.path, destination)
            return False
        if self.backend.moves_by_rename:
            return self.backend.rename(handle.path, destination)

        copier = Copier(
            self.backend,
            buffer_size=self.buffer_size,
            monitor=self.monitor,
            logger=self.logger,
        )
        copy_succeeded = copier.copy([handle], destination.parent)
        if not copy_succeeded or not os.path.lexists(destination):
            self.logger.warning("Keeping %s: its copy to %s is incomplete", handle.path, destination)
            return False
        return self.backend.delete(handle.path)


def delete_all(
    backend: StorageBackend,
    victims: Sequence[FileHandle],
    index: Optional[IndexInvalidation] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> bool:
    """Delete every victim independently; True only if all of them went away."""
    index = index or _SilentIndex()
    counter = ProgressCounter(total=len(victims))
    all_succeeded = True
    for victim in victims:
        if on_progress is not None:
            on_progress(counter, victim.path, victim.path.parent)
        paths = paths_under(victim.path)
        deleted = backend.delete(victim.path)
        gone = [path for path in paths if not os.path.lexists(path)]
        if gone:
            index.paths_removed(gone)
        counter.advance()
        all_succeeded &= deleted
    return all_succeeded


def rename_entry(
    backend: StorageBackend,
    source: Path,
    destination: Path,
    index: Optional[IndexInvalidation] = None,
) -> bool:
    """Rename source to destination. An existing destination counts as done."""
    index = index or _SilentIndex()
    if os.path.lexists(destination):
        return True
    paths = paths_under(source)
    if not backend.rename(source, destination):
        return False
    index.paths_removed(paths)
    index.path_added(str(destination), destination.is_dir())
    return True


def create_directory(
    backend: StorageBackend,
    target: Path,
    index: Optional[IndexInvalidation] = None,
) -> bool:
    """Create target and any missing ancestors; an existing directory counts as done."""
    if target.is_dir():
        return True
    created = backend.make_directories(target)
    if created and index is not None:
        index.path_added(str(target), True)
    return created
