"""Document engine protocol consumed by the transformation pipeline."""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from ..core.model import (
    AnnotationRecord,
    FormDefinition,
    OutlineNode,
    PageRef,
    PdfSource,
    Rectangle,
)

_tokens = itertools.count(1)

PAGE_BOXES = ("media", "crop", "trim", "bleed", "art")


def new_document_token() -> int:
    """Return a token unique to one document instance of this process."""

    return next(_tokens)


@dataclass(frozen=True, slots=True)
class DestinationOptions:
    version: str | None = None
    compress: bool = False


class _Handle(ABC):
    """Document handle with an idempotent :meth:`close`."""

    def __init__(self) -> None:
        self.token = new_document_token()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    def _release(self) -> None:
        """Free engine resources, called at most once."""

    def page_ref(self, index: int) -> PageRef:
        return PageRef(self.token, index)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class SourceDocument(_Handle):
    """An opened input document."""

    name: str

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages."""

    def pages(self) -> list[PageRef]:
        return [self.page_ref(index) for index in range(self.page_count)]

    @property
    def is_encrypted(self) -> bool:
        return False

    @abstractmethod
    def page_box(self, page: PageRef, box: str = "crop") -> Rectangle:
        """Effective page box, applying the PDF defaulting rules."""

    @abstractmethod
    def rotation(self, page: PageRef) -> int:
        """Page rotation in degrees, normalised to 0, 90, 180 or 270."""

    @abstractmethod
    def annotations(self) -> list[AnnotationRecord]:
        """Annotations of every page, in page order."""

    @abstractmethod
    def outline(self) -> list[OutlineNode]:
        """Top level outline items."""

    @abstractmethod
    def form(self) -> FormDefinition | None:
        """The interactive form, ``None`` when the document has none."""

    def metadata(self) -> dict[str, str]:
        return {}


class DestinationDocument(_Handle):
    """A document under construction."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages imported so far."""

    @abstractmethod
    def import_page(self, source: SourceDocument, page: PageRef) -> PageRef:
        """Copy ``page`` of ``source`` at the end of this document."""

    @abstractmethod
    def set_page_box(self, page: PageRef, rectangle: Rectangle, box: str = "crop") -> None:
        """Set a page box of an imported page."""

    @abstractmethod
    def attach_annotations(self, annotations: Sequence[AnnotationRecord]) -> None:
        """Materialise annotation records on the destination pages they reference."""

    @abstractmethod
    def set_form(self, form: FormDefinition) -> None:
        """Install the form; its widgets must have been attached already."""

    @abstractmethod
    def set_outline(self, nodes: Sequence[OutlineNode]) -> None:
        """Replace the outline with ``nodes``."""

    @abstractmethod
    def save(self, target: Path) -> None:
        """Persist the document to ``target``."""


class DocumentEngine(Protocol):
    """Protocol defining the engine operations the pipeline relies on."""

    def open(self, source: PdfSource) -> SourceDocument:
        """Open ``source`` for reading."""

    def create_destination(
        self, based_on: SourceDocument, options: DestinationOptions | None = None
    ) -> DestinationDocument:
        """Create an empty document initialised from ``based_on``."""


__all__ = [
    "PAGE_BOXES",
    "DestinationOptions",
    "DestinationDocument",
    "DocumentEngine",
    "SourceDocument",
    "new_document_token",
]
