"""Task registry and orchestration helpers for pdfreshape tasks."""

from __future__ import annotations

from typing import Dict, Iterable

from ...engine.base import DocumentEngine
from .interfaces import TaskParameters, TransformationTask


class TaskRegistry:
    """Registry storing available pdfreshape tasks."""

    def __init__(self) -> None:
        self._tasks: Dict[str, type[TransformationTask]] = {}

    def register(self, name: str, task_class: type[TransformationTask]) -> None:
        if name in self._tasks:
            raise ValueError(f"Task '{name}' is already registered")
        self._tasks[name] = task_class

    def create(self, name: str, engine: DocumentEngine | None = None) -> TransformationTask:
        try:
            task_class = self._tasks[name]
        except KeyError as exc:
            raise KeyError(f"Task '{name}' is not registered") from exc
        return task_class(engine)

    def for_parameters(self, parameters: TaskParameters) -> type[TransformationTask]:
        """Return the task able to run ``parameters``."""

        for task_class in self._tasks.values():
            if type(parameters) is task_class.parameters_class:
                return task_class
        raise KeyError(f"No task accepts {type(parameters).__name__}")

    def names(self) -> Iterable[str]:
        return sorted(self._tasks.keys())

    def get(self, name: str) -> type[TransformationTask] | None:
        return self._tasks.get(name)


registry = TaskRegistry()


def register_task(name: str):
    def decorator(cls: type[TransformationTask]) -> type[TransformationTask]:
        cls.name = name
        registry.register(name, cls)
        return cls

    return decorator


__all__ = ["TaskRegistry", "registry", "register_task"]
