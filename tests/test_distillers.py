from __future__ import annotations

from pdfreshape.core.model import AnnotationRecord, OutlineNode, PageRef
from pdfreshape.tools.common.lookup import PageCorrespondence
from pdfreshape.tools.components import AnnotationsDistiller, OutlineDistiller, clip_signatures

P1, P2, P3 = PageRef(1, 0), PageRef(1, 1), PageRef(1, 2)
D1, D2, D3, D4 = PageRef(2, 0), PageRef(2, 1), PageRef(2, 2), PageRef(2, 3)


def _correspondence(mapping: dict[PageRef, tuple[PageRef, ...]]) -> PageCorrespondence:
    correspondence = PageCorrespondence()
    for source, destinations in mapping.items():
        correspondence.register(source)
        for destination in destinations:
            correspondence.add_entry(source, destination)
    return correspondence


def _signature(page: PageRef) -> AnnotationRecord:
    return AnnotationRecord(
        key="sig", page=page, subtype="/Widget", field_name="approval", is_signature=True, signed=True
    )


def test_annotations_follow_their_page() -> None:
    note = AnnotationRecord(key="note", page=P1, subtype="/Text")
    dropped = AnnotationRecord(key="gone", page=P2, subtype="/Text")
    correspondence = _correspondence({P1: (D1, D2), P2: ()})

    result = AnnotationsDistiller().distill([note, dropped], correspondence)

    assert [(record.key, record.page) for record in result] == [("note", D1), ("note", D2)]


def test_links_to_removed_pages_are_dropped_and_replicas_use_the_first_copy() -> None:
    to_removed = AnnotationRecord(key="a", page=P1, subtype="/Link", target=P2)
    to_replicated = AnnotationRecord(key="b", page=P1, subtype="/Link", target=P3)
    correspondence = _correspondence({P1: (D1,), P2: (), P3: (D2, D3)})

    result = AnnotationsDistiller().distill([to_removed, to_replicated], correspondence)

    assert len(result) == 1
    assert result[0].key == "b"
    assert result[0].page == D1
    assert result[0].target == D2


def test_signatures_are_kept_on_one_to_one_correspondence() -> None:
    correspondence = _correspondence({P1: (D1,), P2: (D2,)})

    result = AnnotationsDistiller().distill([_signature(P1)], correspondence)

    assert result[0].signed
    assert result[0].page == D1


def test_signatures_are_invalidated_on_replicated_pages() -> None:
    correspondence = _correspondence({P1: (D1, D2)})

    result = AnnotationsDistiller().distill([_signature(P1)], correspondence)

    assert [record.page for record in result] == [D1, D2]
    assert not any(record.signed for record in result)


def test_signatures_are_invalidated_when_other_pages_are_dropped() -> None:
    correspondence = _correspondence({P1: (D1,), P2: ()})

    result = AnnotationsDistiller().distill([_signature(P1)], correspondence)

    assert len(result) == 1
    assert not result[0].signed


def test_clip_signatures_leaves_other_annotations_alone() -> None:
    link = AnnotationRecord(key="link", page=P1, subtype="/Link", target=P2)
    clipped = clip_signatures([link, _signature(P1)])
    assert clipped[0] is link
    assert not clipped[1].signed


def test_outline_items_are_replicated_with_children_under_the_first_copy() -> None:
    section = OutlineNode("Section", P2)
    chapter = OutlineNode("Chapter", P1, children=(section,))
    correspondence = _correspondence({P1: (D1, D2), P2: (D3,)})

    result = OutlineDistiller().distill([chapter], correspondence)

    assert [(node.title, node.page) for node in result] == [("Chapter", D1), ("Chapter", D2)]
    assert result[0].children == (OutlineNode("Section", D3),)
    assert result[1].children == ()


def test_outline_children_of_removed_items_are_promoted() -> None:
    first = OutlineNode("First", P2)
    second = OutlineNode("Second", P3)
    removed = OutlineNode("Removed", P1, children=(first, second))
    after = OutlineNode("After", P3)
    correspondence = _correspondence({P1: (), P2: (D1,), P3: (D2,)})

    result = OutlineDistiller().distill([removed, after], correspondence)

    assert [node.title for node in result] == ["First", "Second", "After"]
    assert [node.page for node in result] == [D1, D2, D2]


def test_outline_containers_survive_only_with_children() -> None:
    empty = OutlineNode("Empty container", None, children=(OutlineNode("Gone", P1),))
    full = OutlineNode("Container", None, children=(OutlineNode("Kept", P2),))
    correspondence = _correspondence({P1: (), P2: (D4,)})

    result = OutlineDistiller().distill([empty, full], correspondence)

    assert len(result) == 1
    assert result[0].title == "Container"
    assert result[0].page is None
    assert [child.page for child in result[0].children] == [D4]
