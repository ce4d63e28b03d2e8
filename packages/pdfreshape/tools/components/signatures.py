"""Signature handling for documents whose pages were rearranged."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from ...core.model import AnnotationRecord
from ...core.utils import get_logger

LOGGER = get_logger("pdfreshape.signatures")


def clip_signatures(annotations: Iterable[AnnotationRecord]) -> list[AnnotationRecord]:
    """Return ``annotations`` with every signed signature widget marked as unsigned.

    A signature only covers the document it was applied to, once pages are
    duplicated or removed the signed value is no longer valid and the engine
    strips it when the widget is materialised.
    """

    clipped: list[AnnotationRecord] = []
    for annotation in annotations:
        if annotation.is_signature and annotation.signed:
            LOGGER.debug("Invalidating signature %s on %r", annotation.field_name, annotation.page)
            annotation = replace(annotation, signed=False)
        clipped.append(annotation)
    return clipped


__all__ = ["clip_signatures"]
