from __future__ import annotations

import pytest

from pdfreshape.core.model import PageRef
from pdfreshape.tools.common.lookup import PageCorrespondence

P1, P2 = PageRef(1, 0), PageRef(1, 1)
D1, D2, D3 = PageRef(2, 0), PageRef(2, 1), PageRef(2, 2)


def test_one_page_replicated_and_one_dropped() -> None:
    correspondence = PageCorrespondence()
    correspondence.add_entry(P1, D1)
    correspondence.add_entry(P1, D2)
    correspondence.register(P2)

    assert correspondence.entries_for(P1) == (D1, D2)
    assert correspondence.entries_for(P2) == ()
    assert dict(correspondence) == {P1: (D1, D2), P2: ()}
    assert len(correspondence) == 2
    assert not correspondence.is_one_to_one()


def test_reverse_lookup_and_insertion_order() -> None:
    correspondence = PageCorrespondence()
    correspondence.add_entry(P2, D1)
    correspondence.add_entry(P1, D2)
    correspondence.add_entry(P2, D3)

    assert correspondence.source_for(D3) == P2
    assert correspondence.source_for(PageRef(9, 0)) is None
    assert correspondence.all_entries() == [(P2, D1), (P1, D2), (P2, D3)]
    assert correspondence.sources() == [P2, P1]


def test_destination_cannot_be_mapped_twice() -> None:
    correspondence = PageCorrespondence()
    correspondence.add_entry(P1, D1)

    with pytest.raises(ValueError):
        correspondence.add_entry(P2, D1)
    assert correspondence.entries_for(P2) == ()


def test_one_to_one_and_clear() -> None:
    correspondence = PageCorrespondence()
    correspondence.add_entry(P1, D1)
    correspondence.add_entry(P2, D2)
    assert correspondence.is_one_to_one()
    assert P1 in correspondence

    correspondence.clear()

    assert len(correspondence) == 0
    assert P1 not in correspondence
    assert correspondence.entries_for(P1) == ()
