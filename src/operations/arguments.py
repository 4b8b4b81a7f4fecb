"""
Immutable argument containers, one per operation kind.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from storage.models import FileHandle


def _frozen_items(owner: object, field_name: str, items: Iterable[FileHandle]) -> None:
    if items is None:
        raise ValueError(f"{type(owner).__name__}.{field_name} is required")
    values = tuple(items)
    if not values:
        raise ValueError(f"{type(owner).__name__}.{field_name} must not be empty")
    object.__setattr__(owner, field_name, values)


@dataclass(frozen=True)
class Arguments:
    """Base for every operation's arguments; ``target`` is always set."""

    target: Path

    def __post_init__(self) -> None:
        if self.target is None:
            raise ValueError(f"{type(self).__name__}.target is required")
        object.__setattr__(self, "target", Path(os.path.abspath(os.fspath(self.target))))


@dataclass(frozen=True)
class CopyArguments(Arguments):
    files: tuple[FileHandle, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        _frozen_items(self, "files", self.files)


@dataclass(frozen=True)
class MoveArguments(Arguments):
    files: tuple[FileHandle, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        _frozen_items(self, "files", self.files)


@dataclass(frozen=True)
class DeleteArguments(Arguments):
    """``target`` is the directory whose listing should be refreshed afterwards."""

    victims: tuple[FileHandle, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        _frozen_items(self, "victims", self.victims)


@dataclass(frozen=True)
class RenameArguments(Arguments):
    """``target`` is the new absolute path of ``file_to_rename``."""

    file_to_rename: FileHandle | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.file_to_rename is None:
            raise ValueError("RenameArguments.file_to_rename is required")


@dataclass(frozen=True)
class CreateDirectoryArguments(Arguments):
    pass


@dataclass(frozen=True)
class CompressArguments(Arguments):
    """``target`` is the archive file to create."""

    to_compress: tuple[FileHandle, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        _frozen_items(self, "to_compress", self.to_compress)


@dataclass(frozen=True)
class ExtractArguments(Arguments):
    """``target`` is the directory archives are extracted into."""

    archives: tuple[FileHandle, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        _frozen_items(self, "archives", self.archives)
