"""
Extract zip archives into a directory.
"""

from __future__ import annotations

from storage import ArchiveCodec, StorageBackend

from .arguments import ExtractArguments
from .base import FileOperation


class ExtractOperation(FileOperation[ExtractArguments]):
    """Extract every archive into ``target``, stopping at the first entry that fails.

    Entries already written stay in place when a later one fails.
    """

    kind = "extract"

    def operate(self, args: ExtractArguments) -> bool:
        return self._extract(self.env.direct_backend(), args)

    def operate_saf(self, args: ExtractArguments) -> bool:
        return self._extract(self.env.document_backend(), args)

    def describe(self, args: ExtractArguments) -> dict:
        return {"target": str(args.target), "archives": [str(handle.path) for handle in args.archives]}

    def on_result(self, success: bool, args: ExtractArguments) -> None:
        if success:
            self.env.index.path_added(str(args.target), True)
        super().on_result(success, args)

    def _extract(self, backend: StorageBackend, args: ExtractArguments) -> bool:
        codec = ArchiveCodec(
            backend,
            on_progress=self.report_progress,
            buffer_size=self.env.archive_buffer_size,
            monitor=self.env.monitor,
            logger=self.logger,
        )
        if not backend.make_directories(args.target):
            self.logger.error("Could not create extraction target %s", args.target)
            return False
        return codec.extract([handle.path for handle in args.archives], args.target)
