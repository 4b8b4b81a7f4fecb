"""
Base class for storage operations driven by ``FileOperationRunner``.
"""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Generic, Optional, TypeVar

from storage import ProgressCounter

from .arguments import Arguments
from .environment import OperationEnvironment

A = TypeVar("A", bound=Arguments)

CallbackExecutor = Callable[[Callable[[], None]], None]

OUTCOME_COMPLETED = "completed"
OUTCOME_FAILED = "failed"
OUTCOME_DENIED = "denied"


def run_inline(callback: Callable[[], None]) -> None:
    callback()


class FileOperation(ABC, Generic[A]):
    """One kind of storage mutation plus its user-facing hooks.

    ``operate`` works on raw paths; ``operate_saf`` performs the same work
    through granted documents. The runner decides which one runs and in which
    order. Hooks that reach the user go through ``callback_executor`` so a
    front end can marshal them onto its own thread.
    """

    kind = "operation"

    def __init__(
        self,
        environment: OperationEnvironment,
        callback_executor: Optional[CallbackExecutor] = None,
    ) -> None:
        self.env = environment
        self.callback_executor = callback_executor or run_inline
        self.logger = environment.logger
        self.operation_id = ""
        self.outcome: Optional[str] = None

    @abstractmethod
    def operate(self, args: A) -> bool:
        """Run against raw paths; True when everything succeeded."""

    @abstractmethod
    def operate_saf(self, args: A) -> bool:
        """Run through granted documents; called after operate failed and access is held."""

    def needs_write_access(self) -> bool:
        """Whether a failure of this operation can be caused by missing write access."""
        return True

    def describe(self, args: A) -> dict:
        return {"target": str(args.target)}

    # -- hooks -----------------------------------------------------------

    def on_start_operation(self, args: A) -> None:
        """Called before every attempt, so it can run more than once per invocation."""
        self.outcome = None
        if self.env.journal is not None:
            self.env.journal.start_operation(self.operation_id, self.kind, self.describe(args))

    def on_result(self, success: bool, args: A) -> None:
        self.outcome = OUTCOME_COMPLETED if success else OUTCOME_FAILED
        self._complete_journal(self.outcome)
        if success:
            self._post(self.env.status.show_success, self.operation_id, self.kind, args.target)
        else:
            self._post(self.env.status.show_failure, self.operation_id, self.kind, args.target)

    def on_access_denied(self) -> None:
        self.outcome = OUTCOME_DENIED
        self._complete_journal(OUTCOME_DENIED)
        self._post(self.env.status.show_access_denied, self.operation_id, self.kind)

    def on_requesting_access(self) -> None:
        self._post(self.env.status.clear, self.operation_id)

    def on_consent_error(self) -> None:
        self._post(self.env.status.show_consent_error, self.operation_id, self.kind)

    # -- helpers ---------------------------------------------------------

    def report_progress(self, counter: ProgressCounter, item: Path, context: Path) -> None:
        self._post(
            self.env.progress.report,
            self.operation_id,
            counter.completed,
            counter.total,
            item.name,
            context.name or str(context),
        )

    def _post(self, callback: Callable[..., None], *args: object) -> None:
        self.callback_executor(functools.partial(callback, *args))

    def _complete_journal(self, status: str) -> None:
        if self.env.journal is not None:
            self.env.journal.complete_operation(self.operation_id, status)
