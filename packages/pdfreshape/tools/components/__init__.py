"""Components remapping page dependent structures of a document."""

from .acroform import AcroFormPolicy, FormMerger
from .annotations import AnnotationsDistiller
from .outline import OutlineDistiller
from .signatures import clip_signatures

__all__ = [
    "AcroFormPolicy",
    "AnnotationsDistiller",
    "FormMerger",
    "OutlineDistiller",
    "clip_signatures",
]
