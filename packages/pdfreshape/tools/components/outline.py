"""Rebuild the outline tree of a derived document."""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from ...core.model import OutlineNode
from ...core.utils import get_logger
from ..common.lookup import PageCorrespondence

LOGGER = get_logger("pdfreshape.outline")


class OutlineDistiller:
    """Retarget outline items through a page correspondence.

    Items pointing at a removed page disappear and their surviving children
    take their place. Items pointing at a replicated page are repeated once
    per replica, with the children kept under the first one. Items without a
    page are kept only as containers of other items.
    """

    def distill(
        self,
        nodes: Sequence[OutlineNode],
        correspondence: PageCorrespondence,
    ) -> list[OutlineNode]:
        distilled: list[OutlineNode] = []
        for node in nodes:
            distilled.extend(self._distill_node(node, correspondence))
        return distilled

    def _distill_node(self, node: OutlineNode, correspondence: PageCorrespondence) -> list[OutlineNode]:
        children = tuple(self.distill(node.children, correspondence))
        if node.page is None:
            return [replace(node, children=children)] if children else []

        destinations = correspondence.entries_for(node.page)
        if not destinations:
            LOGGER.debug("Outline item '%s' points at a removed page", node.title)
            return list(children)

        first, *others = destinations
        return [replace(node, page=first, children=children)] + [
            replace(node, page=destination, children=()) for destination in others
        ]


__all__ = ["OutlineDistiller"]
