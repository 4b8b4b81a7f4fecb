"""
Path-set helpers: enumerate and count what lives under files and directories.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import FileHandle, is_same_or_ancestor

logger = logging.getLogger("file_ops")


def iter_paths_under(root: Path) -> Iterator[Path]:
    """Yield root and every path beneath it, parents before children."""
    yield root
    if root.is_symlink() or not root.is_dir():
        return
    for child in _sorted_children(root):
        yield from iter_paths_under(child)


def paths_under(root: Path) -> list[str]:
    """Absolute path strings of root and everything below it."""
    return [str(path) for path in iter_paths_under(root)]


def count_files_under(roots: Iterable[FileHandle | Path]) -> int:
    """Count regular files across all roots; a plain file counts as one."""
    total = 0
    for root in roots:
        path = root.path if isinstance(root, FileHandle) else root
        total += _count_files(path)
    return total


def _count_files(path: Path) -> int:
    if path.is_symlink() or not path.is_dir():
        return 1
    return sum(_count_files(child) for child in _sorted_children(path))


def _sorted_children(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir(), key=lambda child: child.name)
    except OSError as exc:
        logger.warning("Listing failed for %s: %s", directory, exc)
        return []


def list_children(directory: Path) -> list[Path]:
    """Sorted immediate children; an unreadable directory yields an empty list."""
    return _sorted_children(directory)


def unique_copy_name(dest_dir: Path, name: str, is_directory: bool = False) -> Path:
    """Return a path inside dest_dir that collides with no existing entry.

    ``report.txt`` becomes ``report (copy).txt``, then ``report (copy 2).txt``
    and so on. Directories keep their whole name as the stem.
    """
    candidate = dest_dir / name
    if not os.path.lexists(candidate):
        return candidate
    if is_directory:
        stem, suffix = name, ""
    else:
        stem, suffix = Path(name).stem, Path(name).suffix
    candidate = dest_dir / f"{stem} (copy){suffix}"
    counter = 2
    while os.path.lexists(candidate):
        candidate = dest_dir / f"{stem} (copy {counter}){suffix}"
        counter += 1
    return candidate


def mount_point_of(path: Path) -> Path:
    current = Path(os.path.abspath(path))
    while not os.path.ismount(current):
        if current.parent == current:
            break
        current = current.parent
    return current


def storage_root_of(path: Path, storage_roots: Iterable[Path] = ()) -> Path:
    """Longest configured storage root containing path, else its mount point."""
    best: Optional[Path] = None
    for root in storage_roots:
        if is_same_or_ancestor(root, path):
            if best is None or len(str(root)) > len(str(best)):
                best = root
    return best if best is not None else mount_point_of(path)


def relative_segments(root: Path, path: Path) -> list[str]:
    """Path segments from root down to path; empty when path is root."""
    relative = os.path.relpath(os.path.normpath(str(path)), os.path.normpath(str(root)))
    if relative == os.curdir:
        return []
    return [segment for segment in relative.split(os.sep) if segment]


def fingerprint_of(path: Path) -> str:
    """Identity of a directory on disk as ``device:inode``; empty if it cannot be read."""
    try:
        stat = path.stat()
    except OSError:
        return ""
    return f"{stat.st_dev}:{stat.st_ino}"


def delete_tree(path: Path) -> bool:
    """Delete a file, link or directory tree; True only if nothing is left behind.

    Children are removed independently so one stubborn entry does not stop
    its siblings from going.
    """
    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
            return True
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.warning("Delete failed for %s: %s", path, exc)
        return False

    all_deleted = True
    for child in _sorted_children(path):
        all_deleted &= delete_tree(child)
    try:
        path.rmdir()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Delete failed for %s: %s", path, exc)
        return False
    return all_deleted
