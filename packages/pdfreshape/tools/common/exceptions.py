"""Exceptions raised by pdfreshape tasks."""

from __future__ import annotations


class TaskError(Exception):
    """Base exception for all errors raised while running a task."""

    def __init__(self, message: str = "", cause: BaseException | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def default_message(self) -> str:
        return "An unknown task error occurred."


class TaskParameterError(TaskError, ValueError):
    """Raised when task parameters are invalid."""

    @property
    def default_message(self) -> str:
        return "Invalid task parameters."


class ResourceAcquisitionError(TaskError):
    """Raised when the resources a task needs cannot be acquired."""

    @property
    def default_message(self) -> str:
        return "Unable to acquire task resources."


class EngineIOError(TaskError):
    """Raised when a document cannot be opened or saved."""

    @property
    def default_message(self) -> str:
        return "Unable to read or write the document."


class StructuralMergeError(TaskError):
    """Raised when forms, annotations or outlines are inconsistent."""

    @property
    def default_message(self) -> str:
        return "Inconsistent document structure."


class CancelledError(TaskError):
    """Raised when the task execution was cancelled."""

    @property
    def default_message(self) -> str:
        return "Task execution was cancelled."


class OutputConflictError(TaskError):
    """Raised when an output already exists and the policy forbids replacing it."""

    @property
    def default_message(self) -> str:
        return "Output file already exists."


__all__ = [
    "TaskError",
    "TaskParameterError",
    "ResourceAcquisitionError",
    "EngineIOError",
    "StructuralMergeError",
    "CancelledError",
    "OutputConflictError",
]
