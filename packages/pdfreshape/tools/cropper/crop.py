"""Crop task: one output page per page and crop area."""

from __future__ import annotations

from ...core.utils import get_logger
from ..common.interfaces import SourceIteration, TransformationTask
from ..common.pipeline import register_task
from .geometry import shift_to_trim_box, unrotate
from .parameters import CropParameters

LOGGER = get_logger("pdfreshape.cropper")


@register_task("crop")
class CropTask(TransformationTask):
    """Replicate every page once per crop area, setting the crop box of each copy."""

    parameters_class = CropParameters
    parameters: CropParameters

    def count_units(self, iteration: SourceIteration) -> int:
        total = 0
        for number in self.parameters.selected_pages(iteration.document.page_count):
            total += 1 if self.parameters.is_uncropped(number) else len(self.parameters.crop_areas)
        return total

    def transform_pages(self, iteration: SourceIteration) -> None:
        source = iteration.document
        destination = iteration.destination
        correspondence = iteration.correspondence
        LOGGER.debug("Applying %d crop area(s) to %s", len(self.parameters.crop_areas), source.name)

        for page in source.pages():
            number = page.index + 1
            if self.parameters.is_excluded(number):
                LOGGER.debug("Dropping excluded page %d", number)
                correspondence.register(page)
                continue

            if self.parameters.is_uncropped(number):
                self.check_interrupted()
                LOGGER.debug("Not cropping page %d", number)
                correspondence.add_entry(page, destination.import_page(source, page))
                self.tick(iteration)
                continue

            rotation = source.rotation(page)
            crop_box = source.page_box(page, "crop")
            media_box = source.page_box(page, "media")
            trim_box = source.page_box(page, "trim")
            for area in self.parameters.crop_areas:
                self.check_interrupted()
                box = shift_to_trim_box(unrotate(area, rotation, crop_box), media_box, trim_box)
                new_page = destination.import_page(source, page)
                correspondence.add_entry(page, new_page)
                destination.set_page_box(new_page, box, "crop")
                self.tick(iteration)


__all__ = ["CropTask"]
