"""Core interfaces and execution state shared by pdfreshape tasks."""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, TypeVar

from ...core.model import PdfSource
from ...core.utils import get_logger
from ...core.validator import ValidationError, ensure_output_directory
from ...engine.base import DestinationDocument, DestinationOptions, DocumentEngine, SourceDocument
from ..components.acroform import AcroFormPolicy, FormMerger
from ..components.annotations import AnnotationsDistiller
from ..components.outline import OutlineDistiller
from .context import ExecutionContext
from .exceptions import (
    EngineIOError,
    ResourceAcquisitionError,
    StructuralMergeError,
    TaskParameterError,
)
from .lookup import PageCorrespondence
from .naming import NameGenerator
from .outputs import ExistingOutputPolicy, OutputAggregator, OutputArtifact

LOGGER = get_logger("pdfreshape.task")

_VERSION = re.compile(r"^(1\.[0-7]|2\.0)$")
T = TypeVar("T")


class TaskState(str, Enum):
    IDLE = "idle"
    BEFORE = "before"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    AFTER = "after"


@dataclass
class TaskParameters:
    """Parameters shared by every task producing one document per source."""

    sources: list[PdfSource]
    output: Path
    output_prefix: str = ""
    existing_output_policy: ExistingOutputPolicy = ExistingOutputPolicy.FAIL
    acroform_policy: AcroFormPolicy = AcroFormPolicy.MERGE
    lenient: bool = False
    discard_outline: bool = False
    version: str | None = None
    compress: bool = False
    max_workers: int = 1

    def __post_init__(self) -> None:
        self.sources = [source if isinstance(source, PdfSource) else PdfSource(source) for source in self.sources]
        self.output = Path(self.output)
        try:
            self.existing_output_policy = ExistingOutputPolicy(self.existing_output_policy)
            self.acroform_policy = AcroFormPolicy(self.acroform_policy)
        except ValueError as exc:
            raise TaskParameterError(str(exc), exc) from exc

    def validate(self) -> None:
        if not self.sources:
            raise TaskParameterError("At least one source document is required")
        try:
            self.output = ensure_output_directory(self.output)
        except (ValidationError, OSError) as exc:
            raise TaskParameterError(str(exc), exc) from exc
        if self.version is not None and not _VERSION.match(str(self.version)):
            raise TaskParameterError(f"Unsupported PDF version: {self.version}")
        if self.max_workers < 1:
            raise TaskParameterError("max_workers must be at least 1")


@dataclass
class SourceIteration:
    """State of one source while it is being transformed."""

    source: PdfSource
    sequence_number: int
    document: SourceDocument | None = None
    destination: DestinationDocument | None = None
    correspondence: PageCorrespondence = field(default_factory=PageCorrespondence)
    completed_units: int = 0
    total_units: int = 0

    def close(self) -> None:
        for handle in (self.destination, self.document):
            if handle is not None:
                handle.close()


class _Interrupted(Exception):
    """Stops a worker after another worker failed."""


class TransformationTask(ABC):
    """Base class for tasks deriving one document from each source.

    Subclasses implement :meth:`count_units` and :meth:`transform_pages`; the
    base class owns the source loop, the structure remapping and the outputs.
    """

    name: str = ""
    parameters_class: type[TaskParameters] = TaskParameters

    def __init__(self, engine: DocumentEngine | None = None) -> None:
        self.engine = engine
        self.state = TaskState.IDLE
        self.result: TaskState | None = None
        self.parameters: TaskParameters | None = None
        self.context: ExecutionContext | None = None
        self.aggregator: OutputAggregator | None = None
        self.annotations_distiller = AnnotationsDistiller()
        self.outline_distiller = OutlineDistiller()
        self.form_merger = FormMerger()
        self.name_generator = NameGenerator()
        self._open_iterations: dict[int, SourceIteration] = {}
        self._lock = threading.Lock()
        self._abort = threading.Event()

    # -- lifecycle -------------------------------------------------------

    def before(self, parameters: TaskParameters, context: ExecutionContext) -> None:
        if self.state is not TaskState.IDLE:
            raise RuntimeError(f"Task '{self.name}' was already started")
        self.state = TaskState.BEFORE
        try:
            parameters.validate()
            self.parameters = parameters
            self.context = context
            if parameters.lenient:
                context.set_lenient(True)
            if self.engine is None:
                from ...engine.pypdf_engine import PypdfEngine

                self.engine = PypdfEngine()
            self.aggregator = OutputAggregator(context, policy=parameters.existing_output_policy)
        except (TaskParameterError, ResourceAcquisitionError):
            self._finish(TaskState.FAILED)
            raise
        except Exception as exc:
            self._finish(TaskState.FAILED)
            raise ResourceAcquisitionError(f"Unable to prepare task '{self.name}'", exc) from exc

        self.form_merger = FormMerger(parameters.acroform_policy)
        self.name_generator = NameGenerator(parameters.output_prefix)
        LOGGER.debug("Task '%s' ready for %d source(s)", self.name, len(parameters.sources))

    def execute(self, parameters: TaskParameters | None = None) -> list[Path]:
        """Process every source and write the outputs, returning their paths."""

        if self.state is not TaskState.BEFORE:
            raise RuntimeError("before() must complete successfully before execute()")
        parameters = parameters or self.parameters
        self.parameters = parameters
        self.state = TaskState.EXECUTING
        try:
            numbered = list(enumerate(parameters.sources, start=1))
            if parameters.max_workers > 1 and len(numbered) > 1:
                self._execute_parallel(numbered, parameters.max_workers)
            else:
                for sequence_number, source in numbered:
                    self.context.assert_not_cancelled()
                    self.process_source(source, sequence_number)
            written = self.aggregator.finalize(parameters.output)
        except BaseException:
            self._finish(TaskState.FAILED)
            raise
        self._finish(TaskState.COMPLETED)
        LOGGER.info("Task '%s' completed, %d document(s) written", self.name, len(written))
        return written

    def after(self) -> None:
        """Release every resource still held; safe to call more than once."""

        if self.state is TaskState.AFTER:
            return
        with self._lock:
            iterations = list(self._open_iterations.values())
            self._open_iterations.clear()
        for iteration in iterations:
            iteration.close()
        if self.aggregator is not None:
            self.aggregator.discard()
        self.state = TaskState.AFTER

    def _finish(self, state: TaskState) -> None:
        self.state = state
        self.result = state

    def _execute_parallel(self, numbered: list[tuple[int, PdfSource]], max_workers: int) -> None:
        errors: dict[int, BaseException] = {}
        errors_lock = threading.Lock()

        def _run(sequence_number: int, source: PdfSource) -> None:
            # sources after an already failed one are not started
            with errors_lock:
                if errors and min(errors) < sequence_number:
                    return
            try:
                self.context.assert_not_cancelled()
                self.process_source(source, sequence_number)
            except _Interrupted:
                LOGGER.debug("Stopped processing %s", source.name)
            except BaseException as exc:
                with errors_lock:
                    errors[sequence_number] = exc
                self._abort.set()

        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pdfreshape") as pool:
            for sequence_number, source in numbered:
                pool.submit(_run, sequence_number, source)

        if errors:
            raise errors[min(errors)]

    # -- per source ------------------------------------------------------

    def process_source(self, source: PdfSource, sequence_number: int) -> None:
        iteration = SourceIteration(source, sequence_number)
        with self._lock:
            self._open_iterations[id(iteration)] = iteration
        try:
            LOGGER.debug("Opening %s", source.name)
            buffer: Path | None = None
            try:
                iteration.document = self.engine.open(source)
                options = DestinationOptions(version=self.parameters.version, compress=self.parameters.compress)
                iteration.destination = self.engine.create_destination(iteration.document, options)
                iteration.total_units = self.count_units(iteration)
                self.transform_pages(iteration)
                self.remap_structures(iteration)

                buffer = self.aggregator.create_buffer()
                LOGGER.debug("Created output temporary buffer %s", buffer)
                iteration.destination.save(buffer)
            except EngineIOError as exc:
                if buffer is not None:
                    buffer.unlink(missing_ok=True)
                self._skip_source(iteration, exc)
                return

            self.aggregator.add_artifact(
                OutputArtifact(
                    path=buffer,
                    name=self.name_generator.generate(str(source.name), sequence_number),
                    source_name=str(source.name),
                    sequence_number=sequence_number,
                )
            )
        finally:
            iteration.correspondence.clear()
            iteration.close()
            with self._lock:
                self._open_iterations.pop(id(iteration), None)

    def _skip_source(self, iteration: SourceIteration, error: EngineIOError) -> None:
        self.context.assert_lenient(error)
        self.context.report_warning(f"Skipping {iteration.source.name}", error)

    def check_interrupted(self) -> None:
        """Poll for cancellation; call before every unit of work."""

        self.context.assert_not_cancelled()
        if self._abort.is_set():
            raise _Interrupted()

    def tick(self, iteration: SourceIteration) -> None:
        iteration.completed_units += 1
        self.context.report_step(iteration.completed_units, iteration.total_units)

    @abstractmethod
    def count_units(self, iteration: SourceIteration) -> int:
        """Number of progress steps :meth:`transform_pages` will report."""

    @abstractmethod
    def transform_pages(self, iteration: SourceIteration) -> None:
        """Import the pages of the source, filling the iteration correspondence."""

    # -- structures ------------------------------------------------------

    def remap_structures(self, iteration: SourceIteration) -> None:
        document = iteration.document
        destination = iteration.destination
        correspondence = iteration.correspondence

        annotations = self._recover(
            iteration,
            "Annotations",
            lambda: self.annotations_distiller.distill(document.annotations(), correspondence),
            [],
        )
        annotations = self.form_merger.retained_annotations(annotations)
        form = self._recover(iteration, "Form", lambda: self.form_merger.merge(document.form(), annotations), None)

        destination.attach_annotations(annotations)
        if form is not None:
            LOGGER.debug("Adding merged form with %d field(s)", len(form.fields))
            destination.set_form(form)

        if not self.parameters.discard_outline:
            outline = self._recover(
                iteration,
                "Outline",
                lambda: self.outline_distiller.distill(document.outline(), correspondence),
                [],
            )
            destination.set_outline(outline)

    def _recover(self, iteration: SourceIteration, description: str, operation: Callable[[], T], default: T) -> T:
        try:
            return operation()
        except StructuralMergeError as exc:
            self.context.assert_lenient(exc)
            self.context.report_warning(f"{description} of {iteration.source.name} discarded", exc)
            return default


TaskFactory = Callable[..., TransformationTask]

__all__ = [
    "SourceIteration",
    "TaskFactory",
    "TaskParameters",
    "TaskState",
    "TransformationTask",
]
