"""Retarget page annotations through a page correspondence."""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from ...core.model import AnnotationRecord
from ...core.utils import get_logger
from ..common.lookup import PageCorrespondence
from .signatures import clip_signatures

LOGGER = get_logger("pdfreshape.annotations")


class AnnotationsDistiller:
    """Keep the annotations whose page survived, one copy per destination page.

    * annotations on a dropped page are dropped;
    * links jumping to a dropped page are dropped, links to a replicated page
      jump to its first replica;
    * signature widgets are invalidated when their page is replicated or when
      the pages of the document are not mapped one-to-one.
    """

    def distill(
        self,
        annotations: Sequence[AnnotationRecord],
        correspondence: PageCorrespondence,
    ) -> list[AnnotationRecord]:
        one_to_one = correspondence.is_one_to_one()
        retained: list[AnnotationRecord] = []
        for annotation in annotations:
            destinations = correspondence.entries_for(annotation.page)
            if not destinations:
                LOGGER.debug("Dropping %s annotation of removed %r", annotation.subtype, annotation.page)
                continue

            target = annotation.target
            if target is not None:
                targets = correspondence.entries_for(target)
                if not targets:
                    LOGGER.debug("Dropping link to removed %r", target)
                    continue
                target = targets[0]

            copies = [replace(annotation, page=destination, target=target) for destination in destinations]
            if len(copies) > 1 or not one_to_one:
                copies = clip_signatures(copies)
            retained.extend(copies)

        LOGGER.debug("Retained %d of %d annotation(s)", len(retained), len(annotations))
        return retained


__all__ = ["AnnotationsDistiller"]
