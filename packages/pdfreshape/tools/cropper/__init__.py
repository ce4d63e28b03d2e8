"""Crop utilities exposed through the pdfreshape tools namespace."""

from __future__ import annotations

from .crop import CropTask
from .geometry import shift_to_trim_box, unrotate
from .parameters import CropParameters

__all__ = ["CropParameters", "CropTask", "shift_to_trim_box", "unrotate"]
