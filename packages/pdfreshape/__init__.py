"""Batch PDF page transformations that keep forms, annotations and outlines intact."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

from .core.model import PdfSource, Rectangle
from .engine import PypdfEngine
from .tools import load_builtin_plugins
from .tools.common.context import ExecutionContext, TaskWarning
from .tools.common.exceptions import (
    CancelledError,
    EngineIOError,
    OutputConflictError,
    ResourceAcquisitionError,
    StructuralMergeError,
    TaskError,
    TaskParameterError,
)
from .tools.common.interfaces import TaskParameters, TaskState, TransformationTask
from .tools.common.outputs import ExistingOutputPolicy
from .tools.common.pipeline import TaskRegistry, register_task, registry
from .tools.common.service import TaskExecutionService, TaskOutcome
from .tools.components.acroform import AcroFormPolicy
from .tools.cropper import CropParameters, CropTask

__version__ = "0.1.0"

load_builtin_plugins()

__all__ = [
    "AcroFormPolicy",
    "CancelledError",
    "CropParameters",
    "CropTask",
    "EngineIOError",
    "ExecutionContext",
    "ExistingOutputPolicy",
    "OutputConflictError",
    "PdfSource",
    "PypdfEngine",
    "Rectangle",
    "ResourceAcquisitionError",
    "StructuralMergeError",
    "TaskError",
    "TaskExecutionService",
    "TaskOutcome",
    "TaskParameterError",
    "TaskParameters",
    "TaskRegistry",
    "TaskState",
    "TaskWarning",
    "TransformationTask",
    "crop_documents",
    "register_task",
    "registry",
]


def crop_documents(
    inputs: Iterable[str | Path | PdfSource],
    output_dir: str | Path,
    crop_areas: Sequence[Rectangle | str | Sequence[float]],
    *,
    context: ExecutionContext | None = None,
    **options,
) -> list[Path]:
    """Convenience wrapper around the crop task.

    Raises the task error on failure; warnings are collected on ``context``.
    """

    parameters = CropParameters(
        sources=list(inputs),
        output=Path(output_dir),
        crop_areas=list(crop_areas),
        **options,
    )
    outcome = TaskExecutionService().execute(parameters, context)
    if outcome.error is not None:
        raise outcome.error
    return outcome.artifacts
