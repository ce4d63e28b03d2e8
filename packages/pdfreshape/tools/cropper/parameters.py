"""Parameters of the crop task."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from ...core.model import Rectangle
from ...core.utils import parse_page_selection
from ..common.exceptions import TaskParameterError
from ..common.interfaces import TaskParameters


def _as_rectangle(value: Rectangle | str | Sequence[float]) -> Rectangle:
    if isinstance(value, Rectangle):
        return value
    if isinstance(value, str):
        return Rectangle.parse(value)
    left, bottom, right, top = value
    return Rectangle(float(left), float(bottom), float(right), float(top))


@dataclass
class CropParameters(TaskParameters):
    """Crop every page of the sources to one or more areas.

    Each page yields one output page per crop area. ``excluded_pages`` are
    left out of the output, ``uncropped_pages`` are copied once as they are.
    Page numbers are 1-based.
    """

    crop_areas: list[Rectangle] = field(default_factory=list)
    excluded_pages: frozenset[int] = frozenset()
    uncropped_pages: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        super().__post_init__()
        try:
            self.crop_areas = [_as_rectangle(area) for area in self.crop_areas]
            self.excluded_pages = parse_page_selection(self.excluded_pages)
            self.uncropped_pages = parse_page_selection(self.uncropped_pages)
        except (TypeError, ValueError) as exc:
            raise TaskParameterError(str(exc), exc) from exc

    def validate(self) -> None:
        super().validate()
        if not self.crop_areas:
            raise TaskParameterError("At least one crop area is required")
        overlap = self.excluded_pages & self.uncropped_pages
        if overlap:
            pages = ", ".join(str(page) for page in sorted(overlap))
            raise TaskParameterError(f"Pages cannot be both excluded and uncropped: {pages}")

    def is_excluded(self, page_number: int) -> bool:
        return page_number in self.excluded_pages

    def is_uncropped(self, page_number: int) -> bool:
        return page_number in self.uncropped_pages

    def selected_pages(self, page_count: int) -> Iterable[int]:
        return (number for number in range(1, page_count + 1) if not self.is_excluded(number))


__all__ = ["CropParameters"]
