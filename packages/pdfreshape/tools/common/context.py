"""Execution context shared by every component of a running task."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable

from ...core.utils import get_logger
from .exceptions import CancelledError

LOGGER = get_logger("pdfreshape.context")

ProgressListener = Callable[[int, int], None]
WarningListener = Callable[["TaskWarning"], None]


@dataclass(frozen=True, slots=True)
class TaskWarning:
    """A recoverable problem downgraded to a warning."""

    message: str
    cause: BaseException | None = None

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"


class ExecutionContext:
    """Cancellation flag, leniency flag and progress sink of a task run.

    Cancellation is cooperative: :meth:`cancel` only sets a flag that the
    task polls through :meth:`assert_not_cancelled`. Listener failures are
    logged and never interrupt the task.
    """

    def __init__(
        self,
        *,
        lenient: bool = False,
        on_progress: ProgressListener | None = None,
        on_warning: WarningListener | None = None,
    ) -> None:
        self._lenient = lenient
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._progress_listeners: list[ProgressListener] = []
        self._warning_listeners: list[WarningListener] = []
        self._warnings: list[TaskWarning] = []
        if on_progress is not None:
            self.add_progress_listener(on_progress)
        if on_warning is not None:
            self.add_warning_listener(on_warning)

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._progress_listeners.append(listener)

    def add_warning_listener(self, listener: WarningListener) -> None:
        self._warning_listeners.append(listener)

    # cancellation

    def cancel(self) -> None:
        LOGGER.info("Cancellation requested")
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def assert_not_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise CancelledError("Task was cancelled by the user")

    # leniency

    def is_lenient(self) -> bool:
        return self._lenient

    def set_lenient(self, lenient: bool) -> None:
        self._lenient = lenient

    def assert_lenient(self, error: Exception) -> None:
        """Re-raise ``error`` unless the run is lenient."""

        if not self._lenient:
            raise error

    # notifications

    def report_step(self, completed: int, total: int) -> None:
        LOGGER.debug("Completed %d of %d step(s)", completed, total)
        for listener in list(self._progress_listeners):
            try:
                listener(completed, total)
            except Exception as exc:  # pragma: no cover - listener errors vary
                LOGGER.warning("Progress listener failed: %s", exc)

    def report_warning(self, message: str, cause: BaseException | None = None) -> TaskWarning:
        warning = TaskWarning(message, cause)
        LOGGER.warning("%s", warning)
        with self._lock:
            self._warnings.append(warning)
        for listener in list(self._warning_listeners):
            try:
                listener(warning)
            except Exception as exc:  # pragma: no cover - listener errors vary
                LOGGER.warning("Warning listener failed: %s", exc)
        return warning

    @property
    def warnings(self) -> list[TaskWarning]:
        with self._lock:
            return list(self._warnings)


__all__ = ["ExecutionContext", "TaskWarning", "ProgressListener", "WarningListener"]
