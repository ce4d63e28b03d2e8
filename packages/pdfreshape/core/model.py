"""Shared domain models used across pdfreshape tasks.

The records in this module are engine-neutral views of the document-wide
structures that depend on pages. Engine specific objects travel along in the
``payload`` fields, which take no part in equality or hashing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Hashable


@dataclass(frozen=True, slots=True)
class PageRef:
    """Opaque identity of a page inside one specific document instance."""

    document: int
    index: int

    def __repr__(self) -> str:
        return f"PageRef(doc={self.document}, page={self.index + 1})"


@dataclass(frozen=True, slots=True)
class Rectangle:
    """Rectangle in default user space units, expressed by its edges."""

    left: float
    bottom: float
    right: float
    top: float

    def __post_init__(self) -> None:
        if self.right <= self.left or self.top <= self.bottom:
            raise ValueError(
                f"Invalid rectangle [{self.left}, {self.bottom}, {self.right}, {self.top}]: "
                "right/top must be greater than left/bottom"
            )

    @classmethod
    def from_origin(cls, x: float, y: float, width: float, height: float) -> "Rectangle":
        return cls(x, y, x + width, y + height)

    @classmethod
    def parse(cls, value: str) -> "Rectangle":
        """Parse ``"left,bottom,right,top"``."""

        parts = [part.strip() for part in value.replace(" ", ",").split(",") if part.strip()]
        if len(parts) != 4:
            raise ValueError(f"Expected 'left,bottom,right,top', got: {value!r}")
        left, bottom, right, top = (float(part) for part in parts)
        return cls(left, bottom, right, top)

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    def as_list(self) -> list[float]:
        return [self.left, self.bottom, self.right, self.top]


@dataclass(frozen=True, slots=True)
class PdfSource:
    """A PDF input together with the password needed to open it."""

    path: Path
    password: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        if self.name is None:
            object.__setattr__(self, "name", self.path.name)

    def __str__(self) -> str:
        return str(self.name)


@dataclass(frozen=True, slots=True)
class AnnotationRecord:
    """Annotation anchored to a page.

    ``key`` identifies the annotation in the source document and is shared by
    every copy made from it. ``target`` is the page a link annotation jumps to.
    """

    key: Hashable
    page: PageRef
    subtype: str
    field_name: str | None = None
    is_signature: bool = False
    signed: bool = False
    target: PageRef | None = None
    payload: Any = field(default=None, compare=False, hash=False, repr=False)

    @property
    def is_widget(self) -> bool:
        return self.subtype == "/Widget"


@dataclass(frozen=True, slots=True)
class OutlineNode:
    """Outline (bookmark) item, optionally targeting a page."""

    title: str
    page: PageRef | None = None
    children: tuple["OutlineNode", ...] = ()
    is_open: bool = True

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True, slots=True)
class FormField:
    """Terminal AcroForm field and the widgets rendering its value."""

    name: str
    field_type: str | None = None
    widget_keys: tuple[Hashable, ...] = ()
    widgets: tuple[AnnotationRecord, ...] = ()
    signed: bool = False
    payload: Any = field(default=None, compare=False, hash=False, repr=False)

    @property
    def is_signature(self) -> bool:
        return self.field_type == "/Sig"


@dataclass(frozen=True, slots=True)
class FormDefinition:
    """Document-wide interactive form."""

    fields: tuple[FormField, ...] = ()
    payload: Any = field(default=None, compare=False, hash=False, repr=False)

    def field_names(self) -> list[str]:
        return [form_field.name for form_field in self.fields]
