"""Document engines used to read and write PDF files."""

from .base import DestinationDocument, DestinationOptions, DocumentEngine, SourceDocument
from .pypdf_engine import PypdfEngine

__all__ = [
    "DestinationDocument",
    "DestinationOptions",
    "DocumentEngine",
    "PypdfEngine",
    "SourceDocument",
]
