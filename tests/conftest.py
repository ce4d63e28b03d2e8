from __future__ import annotations

from pathlib import Path
from typing import Callable
import sys

import pytest
from pypdf import PdfWriter
from pypdf.annotations import Link
from pypdf.generic import (
    ArrayObject,
    ByteStringObject,
    DictionaryObject,
    NameObject,
    NumberObject,
    RectangleObject,
    TextStringObject,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT / "packages") not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT / "packages"))


def _write(writer: PdfWriter, path: Path) -> Path:
    with path.open("wb") as stream:
        writer.write(stream)
    return path


def _widget(writer: PdfWriter, page, rect: list[float], **entries) -> DictionaryObject:
    widget = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Annot"),
            NameObject("/Subtype"): NameObject("/Widget"),
            NameObject("/Rect"): RectangleObject(rect),
            NameObject("/F"): NumberObject(4),
            NameObject("/P"): page.indirect_reference,
        }
    )
    for key, value in entries.items():
        widget[NameObject(f"/{key}")] = value
    reference = writer._add_object(widget)
    annotations = page.get("/Annots")
    if annotations is None:
        annotations = ArrayObject()
        page[NameObject("/Annots")] = annotations
    annotations.append(reference)
    return widget


@pytest.fixture()
def sample_pdf(tmp_path: Path) -> Path:
    pdf_path = tmp_path / "sample.pdf"
    writer = PdfWriter()
    for _ in range(5):
        writer.add_blank_page(width=200, height=200)
    writer.add_metadata({"/Producer": "pdfreshape-tests", "/Title": "Sample"})
    return _write(writer, pdf_path)


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    def _create(filename: str, pages: int = 1, title: str | None = None, rotation: int = 0) -> Path:
        path = tmp_path / filename
        writer = PdfWriter()
        for _ in range(pages):
            page = writer.add_blank_page(width=200, height=100)
            if rotation:
                page.rotate(rotation)
        if title is not None:
            writer.add_metadata({"/Title": title})
        return _write(writer, path)

    return _create


@pytest.fixture()
def linked_pdf(tmp_path: Path) -> Path:
    """Three pages: links on page 1 to pages 2 and 3, a two level outline."""

    writer = PdfWriter()
    for _ in range(3):
        writer.add_blank_page(width=200, height=200)
    writer.add_annotation(page_number=0, annotation=Link(rect=(10, 10, 50, 50), target_page_index=1))
    writer.add_annotation(page_number=0, annotation=Link(rect=(60, 10, 100, 50), target_page_index=2))
    chapter = writer.add_outline_item("Chapter", 0)
    writer.add_outline_item("Section", 1, parent=chapter)
    writer.add_outline_item("Appendix", 2)
    return _write(writer, tmp_path / "linked.pdf")


@pytest.fixture()
def form_pdf(tmp_path: Path) -> Path:
    """Two pages: a text field on page 1, a nested text field and a signed signature on page 2."""

    writer = PdfWriter()
    first = writer.add_blank_page(width=200, height=200)
    second = writer.add_blank_page(width=200, height=200)

    name = _widget(
        writer,
        first,
        [10, 10, 100, 30],
        FT=NameObject("/Tx"),
        T=TextStringObject("name"),
        V=TextStringObject("Ada"),
    )

    person = DictionaryObject({NameObject("/T"): TextStringObject("person")})
    person_reference = writer._add_object(person)
    city = _widget(
        writer,
        second,
        [10, 40, 100, 60],
        FT=NameObject("/Tx"),
        T=TextStringObject("city"),
        V=TextStringObject("London"),
        Parent=person_reference,
    )
    person[NameObject("/Kids")] = ArrayObject([city.indirect_reference])

    signature_value = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Sig"),
            NameObject("/Filter"): NameObject("/Adobe.PPKLite"),
            NameObject("/SubFilter"): NameObject("/adbe.pkcs7.detached"),
            NameObject("/Contents"): ByteStringObject(b"\x00" * 16),
        }
    )
    signature = _widget(
        writer,
        second,
        [10, 10, 100, 30],
        FT=NameObject("/Sig"),
        T=TextStringObject("approval"),
        V=writer._add_object(signature_value),
    )

    writer._root_object[NameObject("/AcroForm")] = DictionaryObject(
        {
            NameObject("/Fields"): ArrayObject(
                [name.indirect_reference, person_reference, signature.indirect_reference]
            ),
            NameObject("/DA"): TextStringObject("/Helv 0 Tf 0 g"),
            NameObject("/SigFlags"): NumberObject(3),
        }
    )
    return _write(writer, tmp_path / "form.pdf")
