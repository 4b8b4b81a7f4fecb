"""
Delete files and directory trees.
"""

from __future__ import annotations

from storage import StorageBackend, delete_all

from .arguments import DeleteArguments
from .base import FileOperation


class DeleteOperation(FileOperation[DeleteArguments]):
    kind = "delete"

    def operate(self, args: DeleteArguments) -> bool:
        return self._delete(self.env.direct_backend(), args)

    def operate_saf(self, args: DeleteArguments) -> bool:
        return self._delete(self.env.document_backend(), args)

    def describe(self, args: DeleteArguments) -> dict:
        return {"target": str(args.target), "victims": [str(handle.path) for handle in args.victims]}

    def _delete(self, backend: StorageBackend, args: DeleteArguments) -> bool:
        return delete_all(backend, args.victims, self.env.index, self.report_progress)
