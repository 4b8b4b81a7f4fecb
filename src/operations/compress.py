"""
Compress files and directories into a zip archive.
"""

from __future__ import annotations

import os

from storage import ArchiveCodec, StorageBackend

from .arguments import CompressArguments
from .base import FileOperation


class CompressOperation(FileOperation[CompressArguments]):
    """Write ``to_compress`` into the archive at ``target``.

    A failed compression never leaves a partial archive behind: ``on_result``
    removes it before reporting the failure.
    """

    kind = "compress"

    def operate(self, args: CompressArguments) -> bool:
        return self._compress(self.env.direct_backend(), args)

    def operate_saf(self, args: CompressArguments) -> bool:
        return self._compress(self.env.document_backend(), args)

    def describe(self, args: CompressArguments) -> dict:
        return {
            "target": str(args.target),
            "to_compress": [str(handle.path) for handle in args.to_compress],
        }

    def on_result(self, success: bool, args: CompressArguments) -> None:
        if success:
            self.env.index.path_added(str(args.target), False)
        elif os.path.lexists(args.target):
            if self.env.cleanup_backend().delete(args.target):
                self.logger.info("Removed incomplete archive %s", args.target)
            else:
                self.logger.error("Could not remove incomplete archive %s", args.target)
        super().on_result(success, args)

    def _compress(self, backend: StorageBackend, args: CompressArguments) -> bool:
        codec = ArchiveCodec(
            backend,
            on_progress=self.report_progress,
            buffer_size=self.env.archive_buffer_size,
            compression_level=self.env.compression_level,
            monitor=self.env.monitor,
            logger=self.logger,
        )
        return codec.compress(args.to_compress, args.target)
