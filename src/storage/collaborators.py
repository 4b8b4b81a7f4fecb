"""
Interfaces of the side-effecting collaborators the engine reports to.

Nothing the engine decides depends on what these return. The logging
implementations are the defaults when no richer front end is attached.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol


class ProgressSink(Protocol):
    def report(
        self,
        operation_id: str,
        completed: int,
        total: int,
        current_item_name: str,
        context_name: str,
    ) -> None: ...


class IndexInvalidation(Protocol):
    def paths_removed(self, paths: Iterable[str]) -> None: ...

    def path_added(self, path: str, is_directory: bool) -> None: ...


class StatusDisplayer(Protocol):
    def show_success(self, operation_id: str, kind: str, target: Path) -> None: ...

    def show_failure(self, operation_id: str, kind: str, target: Path) -> None: ...

    def show_access_denied(self, operation_id: str, kind: str) -> None: ...

    def show_consent_error(self, operation_id: str, kind: str) -> None: ...

    def clear(self, operation_id: str) -> None: ...


class LoggingIndexInvalidation:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("file_ops.movement")

    def paths_removed(self, paths: Iterable[str]) -> None:
        for path in paths:
            self.logger.info("removed %s", path)

    def path_added(self, path: str, is_directory: bool) -> None:
        self.logger.info("added %s%s", path, "/" if is_directory else "")


class CompositeIndexInvalidation:
    """Fan index updates out to several sinks."""

    def __init__(self, *sinks: IndexInvalidation) -> None:
        self.sinks = list(sinks)

    def paths_removed(self, paths: Iterable[str]) -> None:
        paths = list(paths)
        for sink in self.sinks:
            sink.paths_removed(paths)

    def path_added(self, path: str, is_directory: bool) -> None:
        for sink in self.sinks:
            sink.path_added(path, is_directory)


class LoggingStatusDisplayer:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("file_ops")

    def show_success(self, operation_id: str, kind: str, target: Path) -> None:
        self.logger.info("%s %s succeeded: %s", kind, operation_id, target)

    def show_failure(self, operation_id: str, kind: str, target: Path) -> None:
        self.logger.error("%s %s failed: %s", kind, operation_id, target)

    def show_access_denied(self, operation_id: str, kind: str) -> None:
        self.logger.warning("%s %s stopped: write access denied", kind, operation_id)

    def show_consent_error(self, operation_id: str, kind: str) -> None:
        self.logger.warning(
            "%s %s: the granted directory does not contain the target, asking again",
            kind,
            operation_id,
        )

    def clear(self, operation_id: str) -> None:
        self.logger.debug("Clearing status for %s", operation_id)
