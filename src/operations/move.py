"""
Move files and directories into another directory.
"""

from __future__ import annotations

from storage import Mover, StorageBackend

from .arguments import MoveArguments
from .base import FileOperation


class MoveOperation(FileOperation[MoveArguments]):
    """Rename each item into the target directory.

    Through granted documents a rename cannot change the parent, so the item
    is copied and the original removed once the copy is complete. A partial
    copy leaves the original untouched.
    """

    kind = "move"

    def operate(self, args: MoveArguments) -> bool:
        return self._move(self.env.direct_backend(), args)

    def operate_saf(self, args: MoveArguments) -> bool:
        return self._move(self.env.document_backend(), args)

    def describe(self, args: MoveArguments) -> dict:
        return {"target": str(args.target), "files": [str(handle.path) for handle in args.files]}

    def _move(self, backend: StorageBackend, args: MoveArguments) -> bool:
        mover = Mover(
            backend,
            index=self.env.index,
            on_progress=self.report_progress,
            buffer_size=self.env.copy_buffer_size,
            monitor=self.env.monitor,
            logger=self.logger,
        )
        return mover.move(args.files, args.target)
