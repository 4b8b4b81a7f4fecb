"""
Storage operations and the runner that negotiates write access for them.
"""

from .arguments import (
    Arguments,
    CompressArguments,
    CopyArguments,
    CreateDirectoryArguments,
    DeleteArguments,
    ExtractArguments,
    MoveArguments,
    RenameArguments,
)
from .base import OUTCOME_COMPLETED, OUTCOME_DENIED, OUTCOME_FAILED, FileOperation
from .compress import CompressOperation
from .copy import CopyOperation
from .create_directory import CreateDirectoryOperation
from .delete import DeleteOperation
from .environment import OperationEnvironment, build_access_manager
from .extract import ExtractOperation
from .move import MoveOperation
from .rename import RenameOperation
from .runner import FileOperationRunner

__all__ = [
    "Arguments",
    "CompressArguments",
    "CompressOperation",
    "CopyArguments",
    "CopyOperation",
    "CreateDirectoryArguments",
    "CreateDirectoryOperation",
    "DeleteArguments",
    "DeleteOperation",
    "ExtractArguments",
    "ExtractOperation",
    "FileOperation",
    "FileOperationRunner",
    "MoveArguments",
    "MoveOperation",
    "OUTCOME_COMPLETED",
    "OUTCOME_DENIED",
    "OUTCOME_FAILED",
    "OperationEnvironment",
    "RenameArguments",
    "RenameOperation",
    "build_access_manager",
]
