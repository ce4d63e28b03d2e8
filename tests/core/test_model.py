from __future__ import annotations

from pathlib import Path

import pytest

from pdfreshape.core.model import OutlineNode, PageRef, PdfSource, Rectangle
from pdfreshape.core.utils import parse_page_selection
from pdfreshape.core.validator import ValidationError, ensure_output_directory


def test_rectangle_parsing_and_dimensions() -> None:
    rectangle = Rectangle.parse("10, 20, 110, 70")
    assert rectangle == Rectangle(10, 20, 110, 70)
    assert (rectangle.width, rectangle.height) == (100, 50)
    assert Rectangle.from_origin(10, 20, 100, 50) == rectangle
    assert rectangle.as_list() == [10, 20, 110, 70]


@pytest.mark.parametrize("value", ["1,2,3", "10,10,5,20", "a,b,c,d"])
def test_rectangle_rejects_invalid_values(value: str) -> None:
    with pytest.raises(ValueError):
        Rectangle.parse(value)


def test_page_refs_are_scoped_to_their_document() -> None:
    assert PageRef(1, 0) != PageRef(2, 0)
    assert len({PageRef(1, 0), PageRef(1, 0)}) == 1
    assert repr(PageRef(3, 0)) == "PageRef(doc=3, page=1)"


def test_pdf_source_defaults_its_name() -> None:
    source = PdfSource("/tmp/input/report.pdf")
    assert source.name == "report.pdf"
    assert isinstance(source.path, Path)
    assert PdfSource("a.pdf", name="custom").name == "custom"


def test_outline_walk_is_depth_first() -> None:
    tree = OutlineNode("a", children=(OutlineNode("b", children=(OutlineNode("c"),)), OutlineNode("d")))
    assert [node.title for node in tree.walk()] == ["a", "b", "c", "d"]


def test_parse_page_selection() -> None:
    assert parse_page_selection("1,3,5-7") == {1, 3, 5, 6, 7}
    assert parse_page_selection([2, "4-5"]) == {2, 4, 5}
    assert parse_page_selection(3) == {3}
    assert parse_page_selection(None) == frozenset()
    with pytest.raises(ValueError):
        parse_page_selection("5-3")
    with pytest.raises(ValueError):
        parse_page_selection("0")


def test_ensure_output_directory(tmp_path: Path) -> None:
    created = ensure_output_directory(tmp_path / "nested" / "out")
    assert created.is_dir()

    file_path = tmp_path / "file.pdf"
    file_path.write_bytes(b"x")
    with pytest.raises(ValidationError):
        ensure_output_directory(file_path)
