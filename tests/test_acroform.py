from __future__ import annotations

import pytest

from pdfreshape.core.model import AnnotationRecord, FormDefinition, FormField, PageRef
from pdfreshape.tools.common.exceptions import StructuralMergeError
from pdfreshape.tools.components import AcroFormPolicy, FormMerger

D1, D2 = PageRef(2, 0), PageRef(2, 1)


def _widget(key: str, page: PageRef, name: str, **kwargs) -> AnnotationRecord:
    return AnnotationRecord(key=key, page=page, subtype="/Widget", field_name=name, **kwargs)


def test_fields_point_at_the_retargeted_widget_copies() -> None:
    form = FormDefinition(
        (
            FormField("name", "/Tx", widget_keys=("w1",)),
            FormField("city", "/Tx", widget_keys=("w2",)),
        ),
        payload="acroform",
    )
    copies = [_widget("w1", D1, "name"), _widget("w1", D2, "name")]

    merged = FormMerger().merge(form, copies)

    assert merged is not None
    assert merged.field_names() == ["name"]
    assert merged.fields[0].widgets == tuple(copies)
    assert merged.payload == "acroform"


def test_signature_field_becomes_unsigned_when_a_widget_was_invalidated() -> None:
    form = FormDefinition((FormField("approval", "/Sig", widget_keys=("s",), signed=True),))
    copies = [_widget("s", D1, "approval", is_signature=True, signed=False)]

    merged = FormMerger().merge(form, copies)

    assert not merged.fields[0].signed


def test_signed_field_stays_signed_with_valid_widgets() -> None:
    form = FormDefinition((FormField("approval", "/Sig", widget_keys=("s",), signed=True),))
    copies = [_widget("s", D1, "approval", is_signature=True, signed=True)]

    assert FormMerger().merge(form, copies).fields[0].signed


def test_no_surviving_field_means_no_form() -> None:
    form = FormDefinition((FormField("name", "/Tx", widget_keys=("w1",)),))
    assert FormMerger().merge(form, []) is None
    assert FormMerger().merge(None, []) is None


def test_discard_policy_drops_form_and_widgets() -> None:
    form = FormDefinition((FormField("name", "/Tx", widget_keys=("w1",)),))
    widget = _widget("w1", D1, "name")
    link = AnnotationRecord(key="l", page=D1, subtype="/Link")
    merger = FormMerger(AcroFormPolicy.DISCARD)

    assert merger.merge(form, [widget]) is None
    assert merger.retained_annotations([widget, link]) == [link]


@pytest.mark.parametrize(
    "fields, annotations",
    [
        ((FormField("a", widget_keys=("w1",)), FormField("a", widget_keys=("w2",))), []),
        ((FormField("a", widget_keys=("w1",)), FormField("b", widget_keys=("w1",))), []),
        ((FormField("", widget_keys=("w1",)),), []),
        ((FormField("a", widget_keys=("w1",)),), [_widget("orphan", D1, "missing")]),
    ],
    ids=["duplicate-name", "shared-widget", "unnamed", "missing-field"],
)
def test_malformed_forms_are_rejected(fields, annotations) -> None:
    with pytest.raises(StructuralMergeError):
        FormMerger().merge(FormDefinition(tuple(fields)), annotations)
