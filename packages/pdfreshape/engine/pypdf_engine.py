"""pypdf implementation of the document engine."""

from __future__ import annotations

import io
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Hashable, Iterator, Sequence

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from pypdf.generic import (
    ArrayObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    NullObject,
    NumberObject,
    RectangleObject,
    TextStringObject,
)

from ..core.model import (
    AnnotationRecord,
    FormDefinition,
    FormField,
    OutlineNode,
    PageRef,
    PdfSource,
    Rectangle,
)
from ..core.utils import get_logger
from ..tools.common.exceptions import EngineIOError, StructuralMergeError, TaskError
from .base import PAGE_BOXES, DestinationDocument, DestinationOptions, SourceDocument

LOGGER = get_logger("pdfreshape.engine.pypdf")

# Keys describing a field rather than one of its widgets.
FIELD_ONLY_KEYS = (
    "/T", "/TU", "/TM", "/FT", "/Ff", "/V", "/DV", "/Opt", "/MaxLen",
    "/TI", "/I", "/RV", "/DS", "/Lock", "/SV", "/Kids",
)
FIELD_VALUE_KEYS = (
    "/FT", "/Ff", "/V", "/DV", "/Opt", "/MaxLen", "/TU", "/TM",
    "/TI", "/I", "/RV", "/DS", "/DA", "/Q", "/Lock", "/SV",
)
SIGNATURE_VALUE_KEYS = ("/V", "/SV", "/Lock")
ANNOTATION_IGNORED_KEYS = ("/P", "/Parent", "/Popup", "/IRT")
IMPORT_EXCLUDED_KEYS = ("/Annots", "/B")
SIG_FLAGS_SIGNATURES_EXIST_APPEND_ONLY = 3
# Missing or empty boxes default to the next one, the media box is mandatory.
BOX_FALLBACKS = {"crop": "media", "trim": "crop", "bleed": "crop", "art": "crop"}
PDF_ERRORS = (PyPdfError, KeyError, TypeError, ValueError)


@dataclass(frozen=True, slots=True)
class _AnnotationPayload:
    annotation: DictionaryObject
    view: tuple[Any, ...] = ()


def _resolve(value: Any) -> Any:
    if value is None or isinstance(value, NullObject):
        return None
    if isinstance(value, IndirectObject):
        resolved = value.get_object()
        return None if isinstance(resolved, NullObject) else resolved
    return value


def _object_key(obj: Any, fallback: Hashable) -> Hashable:
    reference = getattr(obj, "indirect_reference", None)
    if reference is None:
        return fallback
    return (reference.idnum, reference.generation)


def _walk_parents(obj: DictionaryObject):
    """Yield ``obj`` and its ancestors, failing on cyclic parent chains."""

    seen: set[int] = set()
    node = obj
    while isinstance(node, DictionaryObject):
        if id(node) in seen:
            raise StructuralMergeError("Cycle detected in the form field hierarchy")
        seen.add(id(node))
        yield node
        node = _resolve(node.get("/Parent"))


def _inherited(obj: DictionaryObject, key: str) -> Any:
    for node in _walk_parents(obj):
        if key in node:
            return _resolve(node.get(key))
    return None


def _qualified_name(obj: DictionaryObject) -> str | None:
    parts = [str(node["/T"]) for node in _walk_parents(obj) if "/T" in node]
    return ".".join(reversed(parts)) or None


@contextmanager
def _translated(error: type[TaskError], message: str) -> Iterator[None]:
    """Re-raise pypdf failures on malformed objects as ``error``."""

    try:
        yield
    except PDF_ERRORS as exc:
        raise error(f"{message}: {exc}", exc) from exc


def _as_rectangle(box: RectangleObject) -> Rectangle | None:
    """Normalise ``box``, ``None`` when it has no area."""

    left, bottom, right, top = (float(value) for value in box)
    if left == right or bottom == top:
        return None
    return Rectangle(min(left, right), min(bottom, top), max(left, right), max(bottom, top))


def _is_open(item: Any) -> bool:
    # pypdf exposes the sign of /Count as /%is_open%
    flag = item.get("/%is_open%") if hasattr(item, "get") else None
    if flag is not None:
        return bool(flag)
    count = item.get("/Count", 0) if hasattr(item, "get") else 0
    return int(count or 0) >= 0


def _clone(value: Any, writer: PdfWriter) -> Any:
    if not hasattr(value, "clone"):
        return value
    clone = value.clone(writer, ignore_fields=ANNOTATION_IGNORED_KEYS)
    reference = getattr(clone, "indirect_reference", None)
    return clone if reference is None else reference


class PypdfSourceDocument(SourceDocument):
    """Input document read through :class:`pypdf.PdfReader`."""

    def __init__(self, reader: PdfReader, name: str, stream: io.BytesIO | None = None) -> None:
        super().__init__()
        self.reader = reader
        self.name = name
        self._stream = stream
        self._page_indexes: dict[tuple[int, int], int] | None = None
        self._named_destinations: dict[str, Any] | None = None

    def _release(self) -> None:
        if self._stream is not None:
            self._stream.close()

    @property
    def page_count(self) -> int:
        return len(self.reader.pages)

    @property
    def is_encrypted(self) -> bool:
        return bool(self.reader.is_encrypted)

    def metadata(self) -> dict[str, str]:
        metadata = self.reader.metadata or {}
        return {
            key: str(value)
            for key, value in metadata.items()
            if isinstance(key, str) and value is not None
        }

    def page(self, page: PageRef):
        if page.document != self.token:
            raise ValueError(f"{page!r} does not belong to {self.name}")
        return self.reader.pages[page.index]

    def page_box(self, page: PageRef, box: str = "crop") -> Rectangle:
        if box not in PAGE_BOXES:
            raise ValueError(f"Unknown page box: {box}")
        pdf_page = self.page(page)
        with _translated(EngineIOError, f"Invalid {box} box on page {page.index + 1} of {self.name}"):
            rectangle = _as_rectangle(getattr(pdf_page, f"{box}box"))
        if rectangle is not None:
            return rectangle
        fallback = BOX_FALLBACKS.get(box)
        if fallback is None:
            raise EngineIOError(f"Empty media box on page {page.index + 1} of {self.name}")
        LOGGER.warning("Ignoring empty %s box on page %d of %s", box, page.index + 1, self.name)
        return self.page_box(page, fallback)

    def rotation(self, page: PageRef) -> int:
        pdf_page = self.page(page)
        with _translated(EngineIOError, f"Invalid rotation on page {page.index + 1} of {self.name}"):
            rotation = int(pdf_page.rotation or 0) % 360
        if rotation % 90:
            LOGGER.warning("Ignoring invalid rotation %s on %r", rotation, page)
            return 0
        return rotation

    # -- page identities -------------------------------------------------

    def _page_index_of(self, value: Any) -> int | None:
        if isinstance(value, IndirectObject):
            if self._page_indexes is None:
                self._page_indexes = {}
                for index, page in enumerate(self.reader.pages):
                    reference = page.indirect_reference
                    if reference is not None:
                        self._page_indexes[(reference.idnum, reference.generation)] = index
            return self._page_indexes.get((value.idnum, value.generation))
        if isinstance(value, int) and 0 <= value < self.page_count:
            return int(value)
        return None

    def _explicit_destination(self, destination: Any) -> ArrayObject | None:
        destination = _resolve(destination)
        if isinstance(destination, (str, bytes)):
            if self._named_destinations is None:
                self._named_destinations = self.reader.named_destinations
            named = self._named_destinations.get(str(destination))
            if named is None:
                return None
            index = self._page_index_of(named.page)
            if index is None:
                return None
            return ArrayObject([NumberObject(index), NameObject("/Fit")])
        if isinstance(destination, ArrayObject) and destination:
            return destination
        return None

    def _link_destination(self, annotation: DictionaryObject) -> ArrayObject | None:
        destination = annotation.get("/Dest")
        if destination is None:
            action = _resolve(annotation.get("/A"))
            if isinstance(action, DictionaryObject) and action.get("/S") == "/GoTo":
                destination = action.get("/D")
        if destination is None:
            return None
        return self._explicit_destination(destination)

    # -- structures ------------------------------------------------------

    def annotations(self) -> list[AnnotationRecord]:
        with _translated(StructuralMergeError, f"Unable to read the annotations of {self.name}"):
            return self._read_annotations()

    def _read_annotations(self) -> list[AnnotationRecord]:
        records: list[AnnotationRecord] = []
        for index, page in enumerate(self.reader.pages):
            annotations = _resolve(page.get("/Annots"))
            if not isinstance(annotations, ArrayObject):
                continue
            for position, reference in enumerate(annotations):
                annotation = _resolve(reference)
                if not isinstance(annotation, DictionaryObject):
                    LOGGER.debug("Skipping invalid annotation %s on page %d", position, index + 1)
                    continue
                records.append(self._annotation_record(index, position, annotation))
        return records

    def _annotation_record(self, index: int, position: int, annotation: DictionaryObject) -> AnnotationRecord:
        subtype = str(annotation.get("/Subtype", ""))
        field_name = None
        is_signature = signed = False
        if subtype == "/Widget":
            field_name = _qualified_name(annotation)
            is_signature = _inherited(annotation, "/FT") == "/Sig"
            signed = is_signature and _inherited(annotation, "/V") is not None

        target = None
        view: tuple[Any, ...] = ()
        if subtype == "/Link":
            destination = self._link_destination(annotation)
            if destination is not None:
                target_index = self._page_index_of(destination[0])
                if target_index is not None:
                    target = self.page_ref(target_index)
                    view = tuple(destination[1:])

        return AnnotationRecord(
            key=_object_key(annotation, ("direct", index, position)),
            page=self.page_ref(index),
            subtype=subtype,
            field_name=field_name,
            is_signature=is_signature,
            signed=signed,
            target=target,
            payload=_AnnotationPayload(annotation, view),
        )

    def outline(self) -> list[OutlineNode]:
        with _translated(StructuralMergeError, f"Unable to read the outline of {self.name}"):
            return self._outline_nodes(self.reader.outline)

    def _outline_nodes(self, items: Sequence[Any]) -> list[OutlineNode]:
        nodes: list[OutlineNode] = []
        for item in items:
            if isinstance(item, list):
                children = tuple(self._outline_nodes(item))
                if nodes:
                    last = nodes[-1]
                    nodes[-1] = OutlineNode(last.title, last.page, last.children + children, last.is_open)
                else:
                    nodes.extend(children)
                continue
            try:
                index = self.reader.get_destination_page_number(item)
            except PDF_ERRORS:
                index = None
            page = self.page_ref(index) if index is not None and 0 <= index < self.page_count else None
            nodes.append(OutlineNode(str(item.title or ""), page, is_open=_is_open(item)))
        return nodes

    def form(self) -> FormDefinition | None:
        with _translated(StructuralMergeError, f"Unable to read the form of {self.name}"):
            return self._read_form()

    def _read_form(self) -> FormDefinition | None:
        root = _resolve(self.reader.trailer.get("/Root"))
        acroform = _resolve(root.get("/AcroForm")) if isinstance(root, DictionaryObject) else None
        if not isinstance(acroform, DictionaryObject):
            return None
        fields = _resolve(acroform.get("/Fields"))
        if fields is None:
            return None
        if not isinstance(fields, ArrayObject):
            raise StructuralMergeError("The AcroForm /Fields entry is not an array")

        collected: list[FormField] = []
        visited: set[Hashable] = set()
        for position, reference in enumerate(fields):
            self._collect_fields(_resolve(reference), collected, visited, (position,))
        return FormDefinition(tuple(collected), payload=acroform)

    def _collect_fields(
        self,
        node: Any,
        collected: list[FormField],
        visited: set[Hashable],
        path: tuple[int, ...],
    ) -> None:
        if not isinstance(node, DictionaryObject):
            raise StructuralMergeError(f"Form field at {path} is not a dictionary")
        key = _object_key(node, ("field",) + path)
        if key in visited:
            raise StructuralMergeError(f"Form field {key} is reachable more than once")
        visited.add(key)

        child_fields: list[DictionaryObject] = []
        widgets: list[DictionaryObject] = []
        kids = _resolve(node.get("/Kids"))
        if kids is not None and not isinstance(kids, ArrayObject):
            raise StructuralMergeError(f"Form field {key} has an invalid /Kids entry")
        for kid in kids or ():
            kid = _resolve(kid)
            if not isinstance(kid, DictionaryObject):
                raise StructuralMergeError(f"Form field {key} has an invalid kid")
            (child_fields if "/T" in kid else widgets).append(kid)

        for position, child in enumerate(child_fields):
            self._collect_fields(child, collected, visited, path + (position,))

        is_widget = node.get("/Subtype") == "/Widget"
        if child_fields and not widgets and not is_widget:
            return

        name = _qualified_name(node)
        if not name:
            raise StructuralMergeError(f"Form field {key} has no name")
        widget_objects = ([node] if is_widget else []) + widgets
        field_type = _inherited(node, "/FT")
        field_type = str(field_type) if field_type is not None else None
        collected.append(
            FormField(
                name=name,
                field_type=field_type,
                widget_keys=tuple(_object_key(widget, None) for widget in widget_objects),
                signed=field_type == "/Sig" and _inherited(node, "/V") is not None,
                payload=node,
            )
        )


class PypdfDestinationDocument(DestinationDocument):
    """Document under construction held by a :class:`pypdf.PdfWriter`."""

    def __init__(self, writer: PdfWriter, options: DestinationOptions | None = None) -> None:
        super().__init__()
        self.writer = writer
        self.options = options or DestinationOptions()
        self._materialized: dict[AnnotationRecord, IndirectObject] = {}

    def _release(self) -> None:
        self._materialized.clear()

    @property
    def page_count(self) -> int:
        return len(self.writer.pages)

    def page(self, page: PageRef):
        if page.document != self.token:
            raise ValueError(f"{page!r} does not belong to this destination document")
        return self.writer.pages[page.index]

    def import_page(self, source: SourceDocument, page: PageRef) -> PageRef:
        if not isinstance(source, PypdfSourceDocument):
            raise TypeError("The pypdf engine can only import pages from pypdf documents")
        source_page = source.page(page)
        with _translated(EngineIOError, f"Unable to import page {page.index + 1} of {source.name}"):
            self.writer.add_page(source_page, excluded_keys=IMPORT_EXCLUDED_KEYS)
        return self.page_ref(len(self.writer.pages) - 1)

    def set_page_box(self, page: PageRef, rectangle: Rectangle, box: str = "crop") -> None:
        if box not in PAGE_BOXES:
            raise ValueError(f"Unknown page box: {box}")
        with _translated(EngineIOError, f"Unable to set the {box} box of page {page.index + 1}"):
            setattr(self.page(page), f"{box}box", RectangleObject(rectangle.as_list()))

    # -- annotations -----------------------------------------------------

    def attach_annotations(self, annotations: Sequence[AnnotationRecord]) -> None:
        with _translated(EngineIOError, "Unable to attach the annotations"):
            self._attach_annotations(annotations)

    def _attach_annotations(self, annotations: Sequence[AnnotationRecord]) -> None:
        for record in annotations:
            page = self.page(record.page)
            reference = self._clone_annotation(record, page)
            existing = _resolve(page.get("/Annots"))
            if not isinstance(existing, ArrayObject):
                existing = ArrayObject()
                page[NameObject("/Annots")] = existing
            existing.append(reference)
            self._materialized[record] = reference
        LOGGER.debug("Attached %d annotation(s)", len(annotations))

    def _clone_annotation(self, record: AnnotationRecord, page) -> IndirectObject:
        payload: _AnnotationPayload = record.payload
        ignored = list(ANNOTATION_IGNORED_KEYS)
        if record.target is not None:
            ignored += ["/Dest", "/A"]
        if record.is_widget:
            ignored.append("/Kids")

        clone = payload.annotation.clone(self.writer, force_duplicate=True, ignore_fields=ignored)
        reference = getattr(clone, "indirect_reference", None)
        if reference is None:
            reference = self.writer._add_object(clone)  # type: ignore[attr-defined]

        clone[NameObject("/P")] = page.indirect_reference
        if record.target is not None:
            target = self.page(record.target)
            view = list(payload.view) or [NameObject("/Fit")]
            clone[NameObject("/Dest")] = ArrayObject([target.indirect_reference, *view])
        if record.is_signature and not record.signed:
            for key in SIGNATURE_VALUE_KEYS:
                if key in clone:
                    del clone[key]
        return reference

    # -- form ------------------------------------------------------------

    def set_form(self, form: FormDefinition) -> None:
        with _translated(EngineIOError, "Unable to write the form"):
            self._write_form(form)

    def _write_form(self, form: FormDefinition) -> None:
        acroform = DictionaryObject()
        source = form.payload
        if isinstance(source, DictionaryObject):
            for key in ("/DA", "/DR", "/Q", "/NeedAppearances"):
                value = _resolve(source.get(key))
                if value is not None:
                    acroform[NameObject(key)] = _clone(value, self.writer)

        top_level = ArrayObject()
        parents: dict[str, IndirectObject] = {}
        signed = False
        for form_field in form.fields:
            widgets = [self._materialized[widget] for widget in form_field.widgets if widget in self._materialized]
            if not widgets:
                LOGGER.debug("Field %s has no attached widget, skipping", form_field.name)
                continue
            parts = form_field.name.split(".")
            field_reference = self._build_field(form_field, parts[-1], widgets)
            parent = self._ensure_parents(parts[:-1], parents, top_level)
            if parent is None:
                top_level.append(field_reference)
            else:
                field_reference.get_object()[NameObject("/Parent")] = parent
                parent.get_object()["/Kids"].append(field_reference)
            signed = signed or (form_field.is_signature and form_field.signed)

        acroform[NameObject("/Fields")] = top_level
        if signed:
            acroform[NameObject("/SigFlags")] = NumberObject(SIG_FLAGS_SIGNATURES_EXIST_APPEND_ONLY)
        self.writer._root_object[NameObject("/AcroForm")] = self.writer._add_object(acroform)  # type: ignore[attr-defined]
        LOGGER.debug("AcroForm with %d top level field(s) added", len(top_level))

    def _build_field(self, form_field: FormField, partial_name: str, widgets: list[IndirectObject]) -> IndirectObject:
        field = DictionaryObject()
        source = form_field.payload
        if isinstance(source, DictionaryObject):
            for key in FIELD_VALUE_KEYS:
                value = _inherited(source, key)
                if value is not None:
                    field[NameObject(key)] = _clone(value, self.writer)
        if form_field.is_signature and not form_field.signed:
            for key in SIGNATURE_VALUE_KEYS:
                if key in field:
                    del field[key]
        field[NameObject("/T")] = TextStringObject(partial_name)
        field[NameObject("/Kids")] = ArrayObject(widgets)
        reference = self.writer._add_object(field)  # type: ignore[attr-defined]

        for widget_reference in widgets:
            widget = widget_reference.get_object()
            for key in FIELD_ONLY_KEYS:
                if key in widget:
                    del widget[key]
            widget[NameObject("/Parent")] = reference
        return reference

    def _ensure_parents(
        self,
        parts: list[str],
        parents: dict[str, IndirectObject],
        top_level: ArrayObject,
    ) -> IndirectObject | None:
        parent: IndirectObject | None = None
        for depth in range(1, len(parts) + 1):
            qualified = ".".join(parts[:depth])
            if qualified not in parents:
                node = DictionaryObject(
                    {
                        NameObject("/T"): TextStringObject(parts[depth - 1]),
                        NameObject("/Kids"): ArrayObject(),
                    }
                )
                reference = self.writer._add_object(node)  # type: ignore[attr-defined]
                if parent is None:
                    top_level.append(reference)
                else:
                    node[NameObject("/Parent")] = parent
                    parent.get_object()["/Kids"].append(reference)
                parents[qualified] = reference
            parent = parents[qualified]
        return parent

    # -- outline ---------------------------------------------------------

    def set_outline(self, nodes: Sequence[OutlineNode]) -> None:
        with _translated(EngineIOError, "Unable to write the outline"):
            for node in nodes:
                self._add_outline_node(node, None)

    def _add_outline_node(self, node: OutlineNode, parent: IndirectObject | None) -> None:
        page_number = node.page.index if node.page is not None else None
        item = self.writer.add_outline_item(node.title, page_number, parent=parent, is_open=node.is_open)
        for child in node.children:
            self._add_outline_node(child, item)

    # -- persistence -----------------------------------------------------

    def save(self, target: Path) -> None:
        if self.options.version:
            self.writer.pdf_header = f"%PDF-{self.options.version}".encode()
        if self.options.compress:
            with _translated(EngineIOError, "Unable to compress the document"):
                self.writer.compress_identical_objects()
        target = Path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("wb") as handle:
                self.writer.write(handle)
        except (OSError, PyPdfError) as exc:
            raise EngineIOError(f"Unable to save to temporary file {target}", exc) from exc


class PypdfEngine:
    """Engine implementation that uses `pypdf` under the hood."""

    def open(self, source: PdfSource) -> PypdfSourceDocument:
        path = Path(source.path)
        if not path.exists() or not path.is_file():
            raise EngineIOError(f"PDF file not found: {path}")

        try:
            raw_bytes = path.read_bytes()
        except OSError as exc:
            raise EngineIOError(f"Unable to read PDF file: {path}", exc) from exc

        stream = io.BytesIO(raw_bytes)
        try:
            reader = PdfReader(stream)
            if reader.is_encrypted:
                LOGGER.debug("Decrypting %s", source.name)
                if reader.decrypt(source.password or "") == 0:
                    raise EngineIOError(f"Unable to decrypt {source.name}, wrong or missing password")
            page_count = len(reader.pages)
        except EngineIOError:
            stream.close()
            raise
        except PDF_ERRORS as exc:
            stream.close()
            raise EngineIOError(f"Corrupted or invalid PDF file: {path}", exc) from exc

        if page_count == 0:
            stream.close()
            raise EngineIOError(f"PDF has no pages: {path}")
        return PypdfSourceDocument(reader, str(source.name), stream)

    def create_destination(
        self, based_on: SourceDocument, options: DestinationOptions | None = None
    ) -> PypdfDestinationDocument:
        writer = PdfWriter()
        with _translated(EngineIOError, f"Unable to copy the document information of {based_on.name}"):
            metadata = based_on.metadata()
            metadata.setdefault("/Producer", "pdfreshape")
            writer.add_metadata(metadata)
        return PypdfDestinationDocument(writer, options)


__all__ = ["PypdfEngine", "PypdfSourceDocument", "PypdfDestinationDocument"]
