"""Rebuild the interactive form of a derived document."""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Hashable, Sequence

from ...core.model import AnnotationRecord, FormDefinition, FormField
from ...core.utils import get_logger
from ..common.exceptions import StructuralMergeError

LOGGER = get_logger("pdfreshape.acroform")


class AcroFormPolicy(str, Enum):
    """What to do with the interactive form of the source documents."""

    MERGE = "merge"
    DISCARD = "discard"


class FormMerger:
    """Point the fields of a source form at the retargeted widget copies."""

    def __init__(self, policy: AcroFormPolicy = AcroFormPolicy.MERGE) -> None:
        self.policy = AcroFormPolicy(policy)

    def retained_annotations(self, annotations: Sequence[AnnotationRecord]) -> list[AnnotationRecord]:
        """Annotations to attach to the destination, widgets go when the form is discarded."""

        if self.policy is AcroFormPolicy.DISCARD:
            return [annotation for annotation in annotations if not annotation.is_widget]
        return list(annotations)

    def merge(
        self,
        form: FormDefinition | None,
        annotations: Sequence[AnnotationRecord],
    ) -> FormDefinition | None:
        """Return the destination form, ``None`` when no field survives.

        Raises :class:`StructuralMergeError` when the source form is malformed.
        """

        if form is None or not form.fields or self.policy is AcroFormPolicy.DISCARD:
            return None

        self._validate(form, annotations)

        copies: dict[Hashable, list[AnnotationRecord]] = {}
        for annotation in annotations:
            if annotation.is_widget:
                copies.setdefault(annotation.key, []).append(annotation)

        fields: list[FormField] = []
        for form_field in form.fields:
            widgets = tuple(copy for key in form_field.widget_keys for copy in copies.get(key, ()))
            if not widgets:
                LOGGER.debug("Removing field '%s', none of its widgets survived", form_field.name)
                continue
            signed = form_field.signed and all(widget.signed for widget in widgets if widget.is_signature)
            fields.append(replace(form_field, widgets=widgets, signed=signed))

        if not fields:
            return None
        LOGGER.debug("Merged %d of %d form field(s)", len(fields), len(form.fields))
        return FormDefinition(tuple(fields), payload=form.payload)

    @staticmethod
    def _validate(form: FormDefinition, annotations: Sequence[AnnotationRecord]) -> None:
        names: set[str] = set()
        owners: dict[Hashable, str] = {}
        for form_field in form.fields:
            if not form_field.name:
                raise StructuralMergeError("Found a form field without a name")
            if form_field.name in names:
                raise StructuralMergeError(f"Duplicate form field name '{form_field.name}'")
            names.add(form_field.name)
            for key in form_field.widget_keys:
                if key is None:
                    continue
                if key in owners:
                    raise StructuralMergeError(
                        f"Widget {key} belongs to both '{owners[key]}' and '{form_field.name}'"
                    )
                owners[key] = form_field.name

        for annotation in annotations:
            if not annotation.is_widget or annotation.key in owners or annotation.field_name is None:
                continue
            if annotation.field_name not in names:
                raise StructuralMergeError(
                    f"Widget {annotation.key} references the missing field '{annotation.field_name}'"
                )


__all__ = ["AcroFormPolicy", "FormMerger"]
