"""Geometry helpers mapping crop areas onto page coordinates."""

from __future__ import annotations

from ...core.model import Rectangle


def unrotate(area: Rectangle, rotation: int, crop_box: Rectangle) -> Rectangle:
    """Map ``area``, expressed on the page as displayed, to unrotated page space.

    ``rotation`` is the clockwise page rotation in degrees and ``crop_box``
    the visible page region.
    """

    rotation %= 360
    if rotation == 90:
        return Rectangle.from_origin(crop_box.width - area.top, area.left, area.height, area.width)
    if rotation == 180:
        return Rectangle.from_origin(
            crop_box.width - area.right, crop_box.height - area.top, area.width, area.height
        )
    if rotation == 270:
        return Rectangle.from_origin(area.bottom, crop_box.height - area.right, area.height, area.width)
    return area


def shift_to_trim_box(area: Rectangle, media_box: Rectangle, trim_box: Rectangle) -> Rectangle:
    """Translate ``area`` by the offset of the trim box inside the media box."""

    delta_x = trim_box.left - media_box.left
    delta_y = trim_box.bottom - media_box.bottom
    return Rectangle(area.left + delta_x, area.bottom + delta_y, area.right + delta_x, area.top + delta_y)


__all__ = ["unrotate", "shift_to_trim_box"]
