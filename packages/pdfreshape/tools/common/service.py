"""Run tasks end to end and report their outcome."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ...core.utils import get_logger
from ...engine.base import DocumentEngine
from .context import ExecutionContext, TaskWarning
from .exceptions import TaskError
from .interfaces import TaskParameters, TaskState
from .pipeline import TaskRegistry, registry

LOGGER = get_logger("pdfreshape.service")


@dataclass
class TaskOutcome:
    """Terminal state of a task run plus the trail of warnings.

    On failure ``artifacts`` holds the files already written out and
    ``committed`` the names of the sources whose output was complete but
    discarded.
    """

    state: TaskState
    artifacts: list[Path] = field(default_factory=list)
    warnings: list[TaskWarning] = field(default_factory=list)
    error: TaskError | None = None
    committed: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is TaskState.COMPLETED


class TaskExecutionService:
    """Look up the task for a set of parameters and run its whole lifecycle."""

    def __init__(self, tasks: TaskRegistry | None = None, engine: DocumentEngine | None = None) -> None:
        self.tasks = tasks or registry
        self.engine = engine

    def execute(self, parameters: TaskParameters, context: ExecutionContext | None = None) -> TaskOutcome:
        context = context or ExecutionContext(lenient=parameters.lenient)
        task = self.tasks.for_parameters(parameters)(self.engine)
        LOGGER.debug("Starting task '%s'", task.name)
        try:
            task.before(parameters, context)
            written = task.execute(parameters)
        except TaskError as exc:
            LOGGER.error("Task '%s' failed: %s", task.name, exc)
            aggregator = task.aggregator
            if aggregator is None:
                return TaskOutcome(TaskState.FAILED, [], context.warnings, exc)
            committed = [artifact.source_name for artifact in aggregator.artifacts]
            return TaskOutcome(TaskState.FAILED, list(aggregator.written), context.warnings, exc, committed)
        finally:
            task.after()
        return TaskOutcome(TaskState.COMPLETED, written, context.warnings)


__all__ = ["TaskExecutionService", "TaskOutcome"]
