"""Validation helpers shared by pdfreshape tasks."""

from __future__ import annotations

from pathlib import Path

from .utils import resolve_path


class ValidationError(RuntimeError):
    """Raised when a path fails validation."""


def ensure_output_directory(path: str | Path) -> Path:
    resolved = resolve_path(path)
    if resolved.exists() and not resolved.is_dir():
        raise ValidationError(f"Output path is not a directory: {resolved}")
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved
