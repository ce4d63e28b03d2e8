"""Utilities shared by pdfreshape tasks."""

from __future__ import annotations

import logging
from pathlib import Path


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False
    return logger


def resolve_path(path: str | Path | None) -> Path:
    if path is None:
        raise ValueError("Path must not be None")
    resolved = Path(path).expanduser().resolve()
    return resolved


def parse_page_selection(pages: str | int | list | tuple | set | None) -> frozenset[int]:
    """Normalise a page selection such as ``"1,3,5-7"`` into 1-based page numbers."""

    if pages is None:
        return frozenset()
    if isinstance(pages, int):
        tokens: list[object] = [pages]
    elif isinstance(pages, str):
        tokens = [token.strip() for token in pages.split(",") if token.strip()]
    else:
        tokens = list(pages)

    selected: set[int] = set()
    for token in tokens:
        if isinstance(token, int):
            selected.add(token)
            continue
        text = str(token).strip()
        if "-" in text:
            start_str, end_str = text.split("-", 1)
            start, end = int(start_str), int(end_str)
            if start > end:
                raise ValueError(f"Invalid page range '{text}': start must be <= end")
            selected.update(range(start, end + 1))
        else:
            selected.add(int(text))

    if any(number < 1 for number in selected):
        raise ValueError("Page numbers must be positive integers")
    return frozenset(selected)
