"""
Create a directory together with any missing ancestors.
"""

from __future__ import annotations

from storage import create_directory

from .arguments import CreateDirectoryArguments
from .base import FileOperation


class CreateDirectoryOperation(FileOperation[CreateDirectoryArguments]):
    kind = "mkdir"

    def operate(self, args: CreateDirectoryArguments) -> bool:
        return create_directory(self.env.direct_backend(), args.target, self.env.index)

    def operate_saf(self, args: CreateDirectoryArguments) -> bool:
        return create_directory(self.env.document_backend(), args.target, self.env.index)
