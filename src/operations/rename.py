"""
Rename a single file or directory.
"""

from __future__ import annotations

from storage import StorageBackend, rename_entry

from .arguments import RenameArguments
from .base import FileOperation


class RenameOperation(FileOperation[RenameArguments]):
    """Rename ``file_to_rename`` to ``target``; an existing target is left alone."""

    kind = "rename"

    def operate(self, args: RenameArguments) -> bool:
        return self._rename(self.env.direct_backend(), args)

    def operate_saf(self, args: RenameArguments) -> bool:
        return self._rename(self.env.document_backend(), args)

    def describe(self, args: RenameArguments) -> dict:
        return {"target": str(args.target), "source": str(args.file_to_rename.path)}

    def _rename(self, backend: StorageBackend, args: RenameArguments) -> bool:
        return rename_entry(backend, args.file_to_rename.path, args.target, self.env.index)
