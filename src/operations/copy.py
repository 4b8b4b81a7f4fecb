"""
Copy files and directory trees into a directory.
"""

from __future__ import annotations

from storage import Copier, StorageBackend

from .arguments import CopyArguments
from .base import FileOperation


class CopyOperation(FileOperation[CopyArguments]):
    """Copy every file under the sources; fails unless all of them were copied."""

    kind = "copy"

    def operate(self, args: CopyArguments) -> bool:
        return self._copy(self.env.direct_backend(), args)

    def operate_saf(self, args: CopyArguments) -> bool:
        return self._copy(self.env.document_backend(), args)

    def describe(self, args: CopyArguments) -> dict:
        return {"target": str(args.target), "files": [str(handle.path) for handle in args.files]}

    def _copy(self, backend: StorageBackend, args: CopyArguments) -> bool:
        copier = Copier(
            backend,
            index=self.env.index,
            on_progress=self.report_progress,
            buffer_size=self.env.copy_buffer_size,
            monitor=self.env.monitor,
            logger=self.logger,
        )
        return copier.copy(args.files, args.target)
