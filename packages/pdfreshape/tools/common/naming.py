"""Output name generation from a prefix template."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

_FILENUMBER = re.compile(r"\[FILENUMBER(#*)\]")
_PLACEHOLDER = re.compile(r"\[(BASENAME|TIMESTAMP|FILENUMBER#*)\]")


class NameGenerator:
    """Expand ``[BASENAME]``, ``[FILENUMBER]`` and ``[TIMESTAMP]`` in a prefix.

    A prefix without placeholders is prepended to the original file name.
    ``[FILENUMBER###]`` pads the number to the count of ``#`` characters.
    """

    def __init__(self, prefix: str = "", *, clock: Callable[[], datetime] | None = None) -> None:
        self.prefix = prefix or ""
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))

    def generate(self, original_name: str, sequence_number: int) -> str:
        original = Path(original_name).name
        base_name = Path(original).stem or "document"

        if not _PLACEHOLDER.search(self.prefix):
            return _ensure_extension(f"{self.prefix}{original or base_name}")

        def _number(match: re.Match[str]) -> str:
            padding = len(match.group(1))
            return f"{sequence_number:0{padding}d}" if padding else str(sequence_number)

        name = _FILENUMBER.sub(_number, self.prefix)
        name = name.replace("[BASENAME]", base_name)
        name = name.replace("[TIMESTAMP]", self._clock().strftime("%Y%m%d_%H%M%S"))
        return _ensure_extension(name)


def _ensure_extension(name: str) -> str:
    safe = name.replace("/", "_").replace("\\", "_").strip() or "document"
    if not safe.lower().endswith(".pdf"):
        safe = f"{safe}.pdf"
    return safe


__all__ = ["NameGenerator"]
