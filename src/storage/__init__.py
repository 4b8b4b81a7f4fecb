"""
Storage layer: access strategies, granted document trees, tree and archive algorithms.
"""

from .access import (
    AccessPermissionListener,
    ConfiguredConsentFlow,
    ConsentFlow,
    ConsoleConsentFlow,
    DirectAccess,
    GrantStore,
    SandboxedAccess,
    StorageAccessManager,
    check_write_access,
)
from .archive import ArchiveCodec, EntryResult
from .backends import DirectBackend, DocumentBackend, StorageBackend
from .collaborators import (
    CompositeIndexInvalidation,
    IndexInvalidation,
    LoggingIndexInvalidation,
    LoggingStatusDisplayer,
    ProgressSink,
    StatusDisplayer,
)
from .documents import Document, DocumentTree
from .models import AccessGrant, ArchiveEntry, FileHandle, ProgressCounter, new_operation_id
from .tree import Copier, Mover, create_directory, delete_all, rename_entry

__all__ = [
    "AccessGrant",
    "AccessPermissionListener",
    "ArchiveCodec",
    "ArchiveEntry",
    "CompositeIndexInvalidation",
    "ConfiguredConsentFlow",
    "ConsentFlow",
    "ConsoleConsentFlow",
    "Copier",
    "DirectAccess",
    "DirectBackend",
    "Document",
    "DocumentBackend",
    "DocumentTree",
    "EntryResult",
    "FileHandle",
    "GrantStore",
    "IndexInvalidation",
    "LoggingIndexInvalidation",
    "LoggingStatusDisplayer",
    "Mover",
    "ProgressCounter",
    "ProgressSink",
    "SandboxedAccess",
    "StatusDisplayer",
    "StorageAccessManager",
    "StorageBackend",
    "check_write_access",
    "create_directory",
    "delete_all",
    "new_operation_id",
    "rename_entry",
]
