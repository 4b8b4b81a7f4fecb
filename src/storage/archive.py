"""
Zip compression and extraction over a storage backend.

Archives keep the relative layout of the compressed roots (the root's own
name is the first path segment), empty directories, and modification times
to the second. The DOS timestamp in every zip header only has two-second
resolution, so each entry also carries an Info-ZIP extended-timestamp extra
field that extraction prefers.
"""

from __future__ import annotations

import contextlib
import logging
import stat
import struct
import time
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Sequence

from utils import ResourceMonitor

from .backends import StorageBackend
from .models import ArchiveEntry, FileHandle, ProgressCounter, is_safe_relative_path
from .paths import count_files_under, list_children
from .tree import ProgressCallback

ARCHIVE_BUFFER_SIZE = 64 * 1024
DEFAULT_COMPRESSION_LEVEL = 6

EXTENDED_TIMESTAMP_TAG = 0x5455
_EXTENDED_TIMESTAMP_MTIME = 0x01
_DOS_EPOCH = (1980, 1, 1, 0, 0, 0)
_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1


@dataclass(frozen=True)
class EntryResult:
    """Outcome of materializing one archive entry."""

    name: str
    success: bool
    path: Optional[Path] = None
    reason: str = ""


def extended_timestamp_extra(mtime: float) -> bytes:
    """Encode an extended-timestamp extra field holding only the mtime."""
    seconds = min(max(int(mtime), _INT32_MIN), _INT32_MAX)
    return struct.pack("<HHBl", EXTENDED_TIMESTAMP_TAG, 5, _EXTENDED_TIMESTAMP_MTIME, seconds)


def parse_extended_mtime(extra: bytes) -> Optional[int]:
    """Return the mtime stored in an extended-timestamp field, if there is one."""
    offset = 0
    while offset + 4 <= len(extra):
        tag, size = struct.unpack_from("<HH", extra, offset)
        data = extra[offset + 4 : offset + 4 + size]
        offset += 4 + size
        if tag != EXTENDED_TIMESTAMP_TAG or len(data) < 5:
            continue
        if data[0] & _EXTENDED_TIMESTAMP_MTIME:
            return struct.unpack_from("<l", data, 1)[0]
    return None


def dos_date_time(mtime: float) -> tuple[int, int, int, int, int, int]:
    date_time = time.localtime(mtime)[:6]
    if date_time[0] < 1980:
        return _DOS_EPOCH
    if date_time[0] > 2107:
        return (2107, 12, 31, 23, 59, 58)
    return date_time


def entry_mtime(info: zipfile.ZipInfo) -> float:
    """Modification time of an entry: extended field first, DOS local time otherwise."""
    extended = parse_extended_mtime(info.extra)
    if extended is not None:
        return float(extended)
    return time.mktime(info.date_time + (0, 0, -1))


def entry_from_info(info: zipfile.ZipInfo) -> ArchiveEntry:
    """Raises ValueError for names that would escape the destination."""
    if not is_safe_relative_path(info.filename):
        raise ValueError(f"Unsafe archive entry name: {info.filename!r}")
    return ArchiveEntry(
        relative_path=info.filename,
        is_directory=info.is_dir(),
        modified_time=entry_mtime(info),
        size=info.file_size,
    )


class ArchiveCodec:
    """Write file trees into zip archives and materialize them back."""

    def __init__(
        self,
        backend: StorageBackend,
        on_progress: Optional[ProgressCallback] = None,
        buffer_size: int = ARCHIVE_BUFFER_SIZE,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        monitor: Optional[ResourceMonitor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.backend = backend
        self.on_progress = on_progress
        self.buffer_size = max(buffer_size, 1)
        self.compression_level = compression_level
        self.monitor = monitor
        self.logger = logger or logging.getLogger("file_ops")

    # -- compression -----------------------------------------------------

    def compress(self, sources: Sequence[FileHandle], archive_path: Path) -> bool:
        """Create archive_path through the backend and write every source into it."""
        try:
            with self.backend.open_output(archive_path) as output:
                return self.write_archive(sources, output, archive_path)
        except OSError as exc:
            self.logger.error("Could not write archive %s: %s", archive_path, exc)
            return False

    def write_archive(self, sources: Sequence[FileHandle], output: BinaryIO, context: Path) -> bool:
        counter = ProgressCounter(total=count_files_under(sources))
        try:
            with zipfile.ZipFile(
                output,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
            ) as archive:
                for source in sources:
                    self._add(archive, counter, source.path, source.path.name, context)
        except (OSError, ValueError, zipfile.LargeZipFile) as exc:
            self.logger.error("Compression into %s aborted: %s", context, exc)
            return False
        return True

    def _add(
        self,
        archive: zipfile.ZipFile,
        counter: ProgressCounter,
        path: Path,
        name: str,
        context: Path,
    ) -> None:
        if path == context:
            # The archive being written sits inside one of the compressed trees.
            return
        if path.is_dir() and not path.is_symlink():
            children = list_children(path)
            if not children:
                self._add_directory_entry(archive, path, name)
            for child in children:
                self._add(archive, counter, child, f"{name}/{child.name}", context)
            return

        if self.on_progress is not None:
            self.on_progress(counter, path, context)
        if self.monitor is not None:
            self.monitor.throttle()
        self._add_file_entry(archive, path, name)
        counter.advance()

    def _add_directory_entry(self, archive: zipfile.ZipFile, path: Path, name: str) -> None:
        info_stat = path.stat()
        entry = ArchiveEntry(f"{name}/", True, info_stat.st_mtime)
        info = self._zip_info(entry)
        info.compress_type = zipfile.ZIP_STORED
        info.external_attr = (stat.S_IFDIR | stat.S_IMODE(info_stat.st_mode)) << 16 | 0x10
        archive.writestr(info, b"")

    def _add_file_entry(self, archive: zipfile.ZipFile, path: Path, name: str) -> None:
        file_stat = path.stat()
        entry = ArchiveEntry(name, False, file_stat.st_mtime, file_stat.st_size)
        info = self._zip_info(entry)
        info.external_attr = (stat.S_IFREG | stat.S_IMODE(file_stat.st_mode)) << 16
        with open(path, "rb") as source, archive.open(info, "w") as target:
            while True:
                chunk = source.read(self.buffer_size)
                if not chunk:
                    break
                target.write(chunk)

    def _zip_info(self, entry: ArchiveEntry) -> zipfile.ZipInfo:
        info = zipfile.ZipInfo(entry.relative_path, date_time=dos_date_time(entry.modified_time))
        info.compress_type = zipfile.ZIP_DEFLATED
        # ZipFile.open(info, "w") does not apply the archive-level compresslevel.
        if hasattr(zipfile.ZipInfo, "compress_level"):
            info.compress_level = self.compression_level
        else:
            info._compresslevel = self.compression_level
        info.file_size = entry.size
        info.extra = extended_timestamp_extra(entry.modified_time)
        return info

    # -- extraction ------------------------------------------------------

    def extract(self, archives: Sequence[Path], dest_dir: Path) -> bool:
        """Extract every archive into dest_dir, stopping at the first failing entry."""
        with contextlib.ExitStack() as stack:
            opened = []
            for archive_path in archives:
                try:
                    opened.append(stack.enter_context(zipfile.ZipFile(archive_path)))
                except (OSError, zipfile.BadZipFile) as exc:
                    self.logger.error("Could not open archive %s: %s", archive_path, exc)
                    return False

            entries = [(archive, info) for archive in opened for info in archive.infolist()]
            counter = ProgressCounter(total=len(entries))
            for archive, info in entries:
                if self.on_progress is not None:
                    self.on_progress(counter, Path(info.filename), dest_dir)
                if self.monitor is not None:
                    self.monitor.throttle()
                result = self.extract_entry(archive, info, dest_dir)
                if not result.success:
                    self.logger.error(
                        "Extraction of %s stopped at %s: %s",
                        archive.filename,
                        result.name,
                        result.reason,
                    )
                    return False
                counter.advance()
        return True

    def extract_entry(
        self,
        archive: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        dest_dir: Path,
    ) -> EntryResult:
        try:
            entry = entry_from_info(info)
        except ValueError as exc:
            return EntryResult(info.filename, False, reason=str(exc))

        destination = dest_dir.joinpath(*[part for part in entry.relative_path.split("/") if part])
        if entry.is_directory:
            if not self.backend.make_directories(destination):
                return EntryResult(entry.relative_path, False, destination, "directory not created")
            return EntryResult(entry.relative_path, True, destination)

        if not self.backend.make_directories(destination.parent):
            return EntryResult(entry.relative_path, False, destination, "parent not created")
        try:
            with archive.open(info) as source, self.backend.open_output(destination) as target:
                while True:
                    chunk = source.read(self.buffer_size)
                    if not chunk:
                        break
                    target.write(chunk)
        except (OSError, zipfile.BadZipFile, zlib.error) as exc:
            return EntryResult(entry.relative_path, False, destination, str(exc))

        self.backend.set_modified_time(destination, entry.modified_time)
        return EntryResult(entry.relative_path, True, destination)
