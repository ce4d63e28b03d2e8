"""Collection and disposal of the documents produced by a task."""

from __future__ import annotations

import shutil
import tempfile
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ...core.utils import get_logger
from .context import ExecutionContext
from .exceptions import OutputConflictError, ResourceAcquisitionError

LOGGER = get_logger("pdfreshape.outputs")


class ExistingOutputPolicy(str, Enum):
    """What to do when an output file with the same name already exists."""

    OVERWRITE = "overwrite"
    FAIL = "fail"
    SKIP = "skip"
    RENAME = "rename"


@dataclass(frozen=True, slots=True)
class OutputArtifact:
    """A finished temporary document waiting to be written out."""

    path: Path
    name: str
    source_name: str
    sequence_number: int


class OutputAggregator:
    """Accumulate artifacts across sources and dispose of them once.

    ``add_artifact`` may be called from several worker threads.
    """

    def __init__(
        self,
        context: ExecutionContext,
        *,
        policy: ExistingOutputPolicy = ExistingOutputPolicy.FAIL,
        buffer_dir: str | Path | None = None,
    ) -> None:
        self.context = context
        self.policy = policy
        self._lock = threading.Lock()
        self._artifacts: list[OutputArtifact] = []
        self.written: list[Path] = []
        self._owns_buffer_dir = buffer_dir is None
        try:
            self.buffer_dir = Path(buffer_dir) if buffer_dir else Path(tempfile.mkdtemp(prefix="pdfreshape-"))
            self.buffer_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ResourceAcquisitionError("Unable to create the temporary output buffer", exc) from exc

    def create_buffer(self, suffix: str = ".pdf") -> Path:
        """Return a fresh temporary file path inside the buffer directory."""

        handle = tempfile.NamedTemporaryFile(dir=self.buffer_dir, suffix=suffix, delete=False)
        handle.close()
        return Path(handle.name)

    def add_artifact(self, artifact: OutputArtifact) -> None:
        with self._lock:
            if any(existing.path == artifact.path for existing in self._artifacts):
                raise ValueError(f"Artifact already registered: {artifact.path}")
            self._artifacts.append(artifact)
        LOGGER.debug("Registered output %s from %s", artifact.name, artifact.source_name)

    @property
    def artifacts(self) -> list[OutputArtifact]:
        with self._lock:
            return sorted(self._artifacts, key=lambda artifact: artifact.sequence_number)

    def finalize(
        self,
        destination: str | Path,
        policy: ExistingOutputPolicy | None = None,
    ) -> list[Path]:
        """Move every artifact into ``destination`` applying ``policy`` on collisions.

        Disposal is best effort: with ``FAIL`` the artifacts written before the
        collision stay where they are. The policy only applies to files that
        were already there; artifacts of this run sharing a name are renamed.
        """

        policy = ExistingOutputPolicy(policy or self.policy)
        destination_dir = Path(destination)
        destination_dir.mkdir(parents=True, exist_ok=True)

        written: list[Path] = []
        claimed: set[Path] = set()
        for artifact in self.artifacts:
            target = destination_dir / artifact.name
            if target in claimed:
                target = _available_name(target)
                LOGGER.debug("Renaming %s to %s, the name is used by another output", artifact.name, target.name)
            elif target.exists():
                if policy is ExistingOutputPolicy.FAIL:
                    raise OutputConflictError(f"File '{target}' already exists")
                if policy is ExistingOutputPolicy.SKIP:
                    self.context.report_warning(f"Skipping '{artifact.name}', the file already exists")
                    self._forget(artifact, delete=True)
                    continue
                if policy is ExistingOutputPolicy.RENAME:
                    target = _available_name(target)
                    LOGGER.debug("Renaming %s to %s to avoid a conflict", artifact.name, target.name)
                else:
                    LOGGER.debug("Overwriting existing file %s", target)

            shutil.move(str(artifact.path), str(target))
            self._forget(artifact, delete=False)
            claimed.add(target)
            written.append(target)
            self.written.append(target)
            LOGGER.info("Written %s", target)
        return written

    def discard(self) -> None:
        """Delete the temporary files of artifacts that were never written out."""

        with self._lock:
            leftovers, self._artifacts = self._artifacts, []
        for artifact in leftovers:
            artifact.path.unlink(missing_ok=True)
        if self._owns_buffer_dir:
            shutil.rmtree(self.buffer_dir, ignore_errors=True)

    def _forget(self, artifact: OutputArtifact, *, delete: bool) -> None:
        with self._lock:
            self._artifacts = [item for item in self._artifacts if item.path != artifact.path]
        if delete:
            artifact.path.unlink(missing_ok=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._artifacts)


def _available_name(target: Path) -> Path:
    counter = 1
    candidate = target
    while candidate.exists():
        candidate = target.with_name(f"{target.stem}({counter}){target.suffix}")
        counter += 1
    return candidate


__all__ = ["ExistingOutputPolicy", "OutputArtifact", "OutputAggregator"]
