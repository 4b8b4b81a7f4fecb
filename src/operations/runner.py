"""
Retry and fallback driver for file operations.

An invocation first runs the operation against raw paths. Only when that
fails and the operation can fail for lack of write access does the runner
look at the access strategy: it either retries through granted documents,
gives up, or asks for consent and starts over once consent is resolved.
Exactly one of ``on_result`` and ``on_access_denied`` reaches the operation
per invocation.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from config import AppConfig
from storage import StorageAccessManager, new_operation_id

from .arguments import Arguments
from .base import FileOperation

DEFAULT_MAX_CONSENT_REQUESTS = 3


class _State(enum.Enum):
    START = "start"
    REQUESTING = "requesting"
    DONE = "done"


class _Attempt:
    """Mutable state of one invocation across all of its retries."""

    def __init__(self, operation: FileOperation, args: Arguments) -> None:
        self.operation = operation
        self.args = args
        self.lock = threading.Lock()
        self.state = _State.START
        self.driving = False
        self.consent_requests = 0


class _ConsentListener:
    """Listener handed to the access strategy for one consent request."""

    def __init__(self, runner: "FileOperationRunner", attempt: _Attempt, request_number: int) -> None:
        self._runner = runner
        self._attempt = attempt
        self._request_number = request_number

    def granted(self) -> None:
        self._runner._resolve_consent(self._attempt, self._request_number, "granted")

    def denied(self) -> None:
        self._runner._resolve_consent(self._attempt, self._request_number, "denied")

    def error(self) -> None:
        self._runner._resolve_consent(self._attempt, self._request_number, "error")


class FileOperationRunner:
    """Drive operations through direct, sandboxed and consent-gated attempts."""

    def __init__(
        self,
        access_manager: StorageAccessManager,
        max_consent_requests: int = DEFAULT_MAX_CONSENT_REQUESTS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.access_manager = access_manager
        self.max_consent_requests = max_consent_requests
        self.logger = logger or logging.getLogger("file_ops")

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        access_manager: StorageAccessManager,
        logger: Optional[logging.Logger] = None,
    ) -> "FileOperationRunner":
        return cls(
            access_manager,
            max_consent_requests=config.get_int(
                "runner", "max_consent_requests", default=DEFAULT_MAX_CONSENT_REQUESTS
            ),
            logger=logger,
        )

    def invoke(self, operation: FileOperation, args: Arguments) -> None:
        """Run operation with args; the outcome arrives through its hooks."""
        operation.operation_id = new_operation_id()
        self.logger.debug("Invoking %s %s", operation.kind, operation.operation_id)
        self._drive(_Attempt(operation, args))

    def submit(self, operation: FileOperation, args: Arguments) -> Future:
        """Run ``invoke`` on a dedicated worker thread."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"file-op-{operation.kind}")
        try:
            return executor.submit(self.invoke, operation, args)
        finally:
            executor.shutdown(wait=False)

    def _drive(self, attempt: _Attempt) -> None:
        with attempt.lock:
            if attempt.driving or attempt.state is not _State.START:
                return
            attempt.driving = True
        try:
            while True:
                with attempt.lock:
                    if attempt.state is not _State.START:
                        attempt.driving = False
                        return
                self._run_attempt(attempt)
        except BaseException:
            with attempt.lock:
                attempt.driving = False
                attempt.state = _State.DONE
            raise

    def _run_attempt(self, attempt: _Attempt) -> None:
        operation, args = attempt.operation, attempt.args
        operation.on_start_operation(args)
        success = self._operate(operation, operation.operate, args)
        if success or not operation.needs_write_access():
            self._finish(attempt, success)
            return

        if self.access_manager.has_write_access(args.target):
            if self.access_manager.is_saf_based():
                self._finish(attempt, self._operate(operation, operation.operate_saf, args))
            else:
                self._finish(attempt, False)
            return

        with attempt.lock:
            bound = self.max_consent_requests
            exhausted = bound > 0 and attempt.consent_requests >= bound
            if not exhausted:
                attempt.consent_requests += 1
                attempt.state = _State.REQUESTING
            request_number = attempt.consent_requests
        if exhausted:
            self.logger.warning(
                "%s %s: giving up after %s consent requests",
                operation.kind,
                operation.operation_id,
                request_number,
            )
            self._deny(attempt)
            return

        operation.on_requesting_access()
        self.access_manager.request_write_access(
            args.target, _ConsentListener(self, attempt, request_number)
        )

    def _operate(
        self,
        operation: FileOperation,
        action: Callable[[Arguments], bool],
        args: Arguments,
    ) -> bool:
        try:
            return bool(action(args))
        except OSError:
            self.logger.exception("%s %s raised", operation.kind, operation.operation_id)
            return False

    def _finish(self, attempt: _Attempt, success: bool) -> None:
        with attempt.lock:
            attempt.state = _State.DONE
        attempt.operation.on_result(success, attempt.args)

    def _deny(self, attempt: _Attempt) -> None:
        with attempt.lock:
            attempt.state = _State.DONE
        attempt.operation.on_access_denied()

    def _resolve_consent(self, attempt: _Attempt, request_number: int, answer: str) -> None:
        with attempt.lock:
            stale = attempt.state is not _State.REQUESTING or request_number != attempt.consent_requests
            if not stale:
                attempt.state = _State.DONE if answer == "denied" else _State.START
                resume = answer != "denied" and not attempt.driving
        operation = attempt.operation
        if stale:
            self.logger.debug(
                "Ignoring late consent answer %r for %s %s", answer, operation.kind, operation.operation_id
            )
            return

        if answer == "denied":
            operation.on_access_denied()
            return
        if answer == "error":
            operation.on_consent_error()
        if resume:
            self._drive(attempt)
