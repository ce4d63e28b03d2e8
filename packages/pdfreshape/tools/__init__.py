"""Namespace for pluggable pdfreshape tasks."""

from __future__ import annotations

from .common.pipeline import registry


def load_builtin_plugins() -> None:
    from .cropper import crop  # noqa: F401  # register the crop task


__all__ = ["registry", "load_builtin_plugins"]
