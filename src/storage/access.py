"""
Write-access strategies.

There are exactly two: ``DirectAccess`` works on raw paths and has no way to
obtain more access than the process already has; ``SandboxedAccess`` can ask
the user for a capability grant over a storage tree and then reach paths
through that grant.
"""

from __future__ import annotations

import logging
import os
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol

from .documents import DocumentTree
from .models import AccessGrant, is_same_or_ancestor
from .paths import fingerprint_of, storage_root_of


class AccessPermissionListener(Protocol):
    def granted(self) -> None: ...

    def denied(self) -> None: ...

    def error(self) -> None: ...


class GrantStore(Protocol):
    def find_grant(self, path: Path) -> Optional[AccessGrant]: ...

    def list_grants(self) -> list[AccessGrant]: ...

    def persist_grant(self, root: Path, token: str) -> AccessGrant: ...


class ConsentFlow(Protocol):
    """User-facing flow that may persist a new grant, then resolves the listener once."""

    def request(self, path: Path, listener: AccessPermissionListener) -> None: ...


class StorageAccessManager(ABC):
    """Common interface of the two access strategies."""

    @abstractmethod
    def has_write_access(self, path: Path) -> bool:
        """Whether path (or the place it would be created) can be written."""

    @abstractmethod
    def request_write_access(self, path: Path, listener: AccessPermissionListener) -> None:
        """Ask for write access; the listener is resolved exactly once, possibly later."""

    @abstractmethod
    def is_saf_based(self) -> bool:
        """True when a failed direct attempt can be retried through granted documents."""


class DirectAccess(StorageAccessManager):
    """Raw path access. Probing is the only thing it can do."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("file_ops")

    def has_write_access(self, path: Path) -> bool:
        return check_write_access(Path(os.path.abspath(path)), logger=self.logger)

    def request_write_access(self, path: Path, listener: AccessPermissionListener) -> None:
        self.logger.info("Direct access cannot request more access for %s", path)
        listener.denied()

    def is_saf_based(self) -> bool:
        return False


class SandboxedAccess(StorageAccessManager):
    """Access mediated by persisted capability grants."""

    def __init__(
        self,
        grants: GrantStore,
        consent_flow: ConsentFlow,
        storage_roots: Iterable[Path] = (),
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.grants = grants
        self.consent_flow = consent_flow
        self.storage_roots = [Path(os.path.abspath(root)) for root in storage_roots]
        self.logger = logger or logging.getLogger("file_ops")
        self.documents = DocumentTree(grants, self.logger)

    def has_write_access(self, path: Path) -> bool:
        path = Path(os.path.abspath(path))
        if self.permission_granted_for_root_of(path):
            return True
        return check_write_access(path, documents=self.documents, logger=self.logger)

    def permission_granted_for_root_of(self, path: Path) -> bool:
        storage_root = storage_root_of(path, self.storage_roots)
        for grant in self.grants.list_grants():
            if not is_same_or_ancestor(grant.root, storage_root):
                continue
            if grant.fingerprint and grant.fingerprint == fingerprint_of(grant.root):
                return True
        return False

    def request_write_access(self, path: Path, listener: AccessPermissionListener) -> None:
        self.consent_flow.request(path, _ConsentOutcome(self, path, listener))

    def is_saf_based(self) -> bool:
        return True


class _ConsentOutcome:
    """Translate the consent flow's answer by re-checking access on the requested path."""

    def __init__(
        self,
        access: SandboxedAccess,
        path: Path,
        listener: AccessPermissionListener,
    ) -> None:
        self._access = access
        self._path = path
        self._listener = listener

    def granted(self) -> None:
        if self._access.has_write_access(self._path):
            self._listener.granted()
        else:
            self._access.logger.warning("Granted tree does not contain %s", self._path)
            self._listener.error()

    def denied(self) -> None:
        if self._access.has_write_access(self._path):
            self._listener.granted()
        else:
            self._listener.denied()

    def error(self) -> None:
        self._listener.error()


def check_write_access(
    path: Path,
    documents: Optional[DocumentTree] = None,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Check the nearest existing ancestor of path with a throwaway marker file."""
    logger = logger or logging.getLogger("file_ops")
    parent = path.parent
    if parent == path:
        return False
    if not parent.exists():
        return check_write_access(parent, documents, logger)

    marker = _marker_in(parent)
    writable = False
    try:
        with open(marker, "xb"):
            pass
        writable = True
    except OSError:
        writable = False

    document = None
    if not writable and documents is not None:
        document = documents.create_file(marker)
        if document is not None:
            writable = document.can_write() and marker.exists()

    try:
        marker.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        if document is None or not document.delete():
            logger.warning("Could not remove access marker %s: %s", marker, exc)
    return writable


def _marker_in(directory: Path) -> Path:
    index = 0
    while True:
        marker = directory / f"WriteAccessCheck{index}"
        if not os.path.lexists(marker):
            return marker
        index += 1


class ConfiguredConsentFlow:
    """Grant requests that fall under roots the configuration pre-approves."""

    def __init__(
        self,
        grants: GrantStore,
        auto_grant_roots: Iterable[Path],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.grants = grants
        self.auto_grant_roots = [Path(os.path.abspath(root)) for root in auto_grant_roots]
        self.logger = logger or logging.getLogger("file_ops")

    def request(self, path: Path, listener: AccessPermissionListener) -> None:
        for root in self.auto_grant_roots:
            if is_same_or_ancestor(root, path):
                self.grants.persist_grant(root, uuid.uuid4().hex)
                self.logger.info("Granted access to %s for %s", root, path)
                listener.granted()
                return
        self.logger.info("No pre-approved root covers %s", path)
        listener.denied()


class ConsoleConsentFlow:
    """Ask on the terminal which directory tree to grant."""

    def __init__(
        self,
        grants: GrantStore,
        prompt: Callable[[str], str] = input,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.grants = grants
        self.prompt = prompt
        self.logger = logger or logging.getLogger("file_ops")

    def request(self, path: Path, listener: AccessPermissionListener) -> None:
        try:
            answer = self.prompt(
                f"Write access is needed for {path}.\n"
                "Enter the directory tree to grant (leave empty to deny): "
            )
        except EOFError:
            listener.denied()
            return
        answer = answer.strip()
        if not answer:
            listener.denied()
            return
        root = Path(answer).expanduser()
        if not root.is_dir():
            self.logger.warning("Cannot grant %s: not a directory", root)
            listener.error()
            return
        self.grants.persist_grant(root, uuid.uuid4().hex)
        listener.granted()
