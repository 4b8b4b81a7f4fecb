"""
Shared collaborators handed to every operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from config import AppConfig
from storage import (
    ConfiguredConsentFlow,
    ConsentFlow,
    DirectAccess,
    DirectBackend,
    DocumentBackend,
    GrantStore,
    IndexInvalidation,
    LoggingIndexInvalidation,
    LoggingStatusDisplayer,
    ProgressSink,
    SandboxedAccess,
    StatusDisplayer,
    StorageAccessManager,
    StorageBackend,
)
from storage.archive import ARCHIVE_BUFFER_SIZE, DEFAULT_COMPRESSION_LEVEL
from storage.tree import COPY_BUFFER_SIZE
from utils import ProgressReporter, ResourceMonitor

ACCESS_STRATEGIES = ("direct", "sandboxed")


class OperationJournal(Protocol):
    def start_operation(self, operation_id: str, operation_type: str, details: Optional[dict] = None) -> None: ...

    def complete_operation(self, operation_id: str, status: str = "completed") -> None: ...


@dataclass
class OperationEnvironment:
    """Access strategy, reporting sinks and tuning values for one process."""

    access_manager: StorageAccessManager
    index: IndexInvalidation = field(default_factory=LoggingIndexInvalidation)
    status: StatusDisplayer = field(default_factory=LoggingStatusDisplayer)
    progress: ProgressSink = field(default_factory=ProgressReporter)
    journal: Optional[OperationJournal] = None
    monitor: Optional[ResourceMonitor] = None
    copy_buffer_size: int = COPY_BUFFER_SIZE
    archive_buffer_size: int = ARCHIVE_BUFFER_SIZE
    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("file_ops"))

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        grants: Optional[GrantStore] = None,
        index: Optional[IndexInvalidation] = None,
        consent_flow: Optional[ConsentFlow] = None,
        journal: Optional[OperationJournal] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "OperationEnvironment":
        logger = logger or logging.getLogger("file_ops")
        return cls(
            access_manager=build_access_manager(config, grants, consent_flow, logger),
            index=index or LoggingIndexInvalidation(),
            status=LoggingStatusDisplayer(logger),
            progress=ProgressReporter(
                interval_seconds=float(config.get("progress", "log_interval_seconds", default=2.0))
            ),
            journal=journal,
            monitor=ResourceMonitor.from_config(config),
            copy_buffer_size=config.get_int("storage", "copy_buffer_bytes", default=COPY_BUFFER_SIZE),
            archive_buffer_size=config.get_int("archive", "buffer_bytes", default=ARCHIVE_BUFFER_SIZE),
            compression_level=config.get_int(
                "archive", "compression_level", default=DEFAULT_COMPRESSION_LEVEL
            ),
            logger=logger,
        )

    def direct_backend(self) -> DirectBackend:
        return DirectBackend(self.logger)

    def document_backend(self) -> DocumentBackend:
        """Backend that goes through granted documents; only the sandboxed strategy has one."""
        if not isinstance(self.access_manager, SandboxedAccess):
            raise RuntimeError("Document access requires the sandboxed access strategy")
        return DocumentBackend(self.access_manager.documents, self.logger)

    def cleanup_backend(self) -> StorageBackend:
        """Most capable backend available, for removing leftovers of a failed attempt."""
        if isinstance(self.access_manager, SandboxedAccess):
            return self.document_backend()
        return self.direct_backend()


def build_access_manager(
    config: AppConfig,
    grants: Optional[GrantStore] = None,
    consent_flow: Optional[ConsentFlow] = None,
    logger: Optional[logging.Logger] = None,
) -> StorageAccessManager:
    """Pick the access strategy named by access.strategy."""
    logger = logger or logging.getLogger("file_ops")
    strategy = str(config.get("access", "strategy", default="direct")).lower()
    if strategy not in ACCESS_STRATEGIES:
        raise ValueError(f"Unknown access strategy: {strategy}")
    if strategy == "direct":
        return DirectAccess(logger)
    if grants is None:
        raise ValueError("The sandboxed access strategy needs a grant store")
    if consent_flow is None:
        consent_flow = ConfiguredConsentFlow(
            grants,
            config.get_paths("access", "auto_grant_roots"),
            logger,
        )
    return SandboxedAccess(
        grants,
        consent_flow,
        storage_roots=config.get_paths("access", "storage_roots"),
        logger=logger,
    )
