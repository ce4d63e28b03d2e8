"""Correspondence between source pages and the pages derived from them."""

from __future__ import annotations

from typing import Iterator

from ...core.model import PageRef


class PageCorrespondence:
    """Insertion-ordered, one-to-many mapping of source to destination pages.

    A source page without entries was dropped; a source page with several
    entries was replicated. Entries are only appended; :meth:`clear` is the
    single way to remove them, at the end of a source iteration.
    """

    def __init__(self) -> None:
        self._forward: dict[PageRef, list[PageRef]] = {}
        self._reverse: dict[PageRef, PageRef] = {}
        self._entries: list[tuple[PageRef, PageRef]] = []

    def register(self, source: PageRef) -> None:
        """Record ``source`` as processed, without any destination page yet."""

        self._forward.setdefault(source, [])

    def add_entry(self, source: PageRef, destination: PageRef) -> None:
        if destination in self._reverse:
            raise ValueError(f"{destination!r} is already mapped to {self._reverse[destination]!r}")
        self._forward.setdefault(source, []).append(destination)
        self._reverse[destination] = source
        self._entries.append((source, destination))

    def entries_for(self, source: PageRef) -> tuple[PageRef, ...]:
        return tuple(self._forward.get(source, ()))

    def source_for(self, destination: PageRef) -> PageRef | None:
        return self._reverse.get(destination)

    def all_entries(self) -> list[tuple[PageRef, PageRef]]:
        return list(self._entries)

    def sources(self) -> list[PageRef]:
        return list(self._forward)

    def is_one_to_one(self) -> bool:
        return all(len(destinations) == 1 for destinations in self._forward.values())

    def clear(self) -> None:
        self._forward.clear()
        self._reverse.clear()
        self._entries.clear()

    def __contains__(self, source: object) -> bool:
        return source in self._forward

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[tuple[PageRef, tuple[PageRef, ...]]]:
        for source, destinations in self._forward.items():
            yield source, tuple(destinations)

    def __repr__(self) -> str:
        mapping = {source: tuple(destinations) for source, destinations in self._forward.items()}
        return f"PageCorrespondence({mapping!r})"


__all__ = ["PageCorrespondence"]
