"""Scan checkpoint persistence.

This module stores the byte offset reached in the current input, the
carried tail, and the inputs already finished. It enables resume
behavior across process restarts.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
import json
from pathlib import Path

from core.constants import CHECKPOINT_STATE_FILE_NAME, INGEST_CHECKPOINT_DIR_NAME
from core.errors import DumpscanIngestError


@dataclass(frozen=True)
class ScanCheckpoint:
    """Checkpoint state metadata.

    Attributes:
        run_signature: Hash of the options a resume must match.
        completed_sources: URIs of inputs scanned to completion.
        current_source: URI of the input in progress, if any.
        next_offset: Byte offset of the next unread chunk.
        chunk_index: Chunks already read from the current input.
        tail: Carried fragment at ``next_offset``.
    """

    run_signature: str
    completed_sources: tuple[str, ...] = field(default_factory=tuple)
    current_source: str | None = None
    next_offset: int = 0
    chunk_index: int = 0
    tail: str = ""

    def position_for(self, source_uri: str) -> tuple[int, int, str]:
        """Return ``(offset, chunk_index, tail)`` to start ``source_uri`` from."""
        if self.current_source == source_uri:
            return self.next_offset, self.chunk_index, self.tail
        return 0, 0, ""

    def advance(
        self,
        source_uri: str,
        next_offset: int,
        chunk_index: int,
        tail: str,
    ) -> "ScanCheckpoint":
        """Return the state after one more chunk of ``source_uri``."""
        return replace(
            self,
            current_source=source_uri,
            next_offset=next_offset,
            chunk_index=chunk_index,
            tail=tail,
        )

    def complete(self, source_uri: str) -> "ScanCheckpoint":
        """Return the state after ``source_uri`` reached DONE."""
        return replace(
            self,
            completed_sources=(*self.completed_sources, source_uri),
            current_source=None,
            next_offset=0,
            chunk_index=0,
            tail="",
        )


class ScanCheckpointStore:
    """Filesystem-backed scan checkpoint store."""

    def __init__(self, output_dir: Path) -> None:
        self._checkpoint_dir = output_dir / INGEST_CHECKPOINT_DIR_NAME

    def prepare_run(self, run_signature: str, resume: bool) -> ScanCheckpoint:
        """Prepare checkpoint state for a new or resumed run.

        Args:
            run_signature: Deterministic run signature.
            resume: Whether this run should resume.

        Returns:
            Checkpoint state for current run.

        Raises:
            DumpscanIngestError: If resume requested without matching checkpoint.
        """
        if resume:
            state = self._read_state()
            if state is None:
                raise DumpscanIngestError(
                    "Cannot resume scan: checkpoint state not found. "
                    "Run the scan once without --resume."
                )
            if state.run_signature != run_signature:
                raise DumpscanIngestError(
                    "Cannot resume scan: checkpoint does not match current source/options. "
                    "Retry without --resume or use the same chunk size and window radius."
                )
            return state
        self.clear()
        state = ScanCheckpoint(run_signature=run_signature)
        self.save(state)
        return state

    def save(self, state: ScanCheckpoint) -> None:
        """Write checkpoint state, replacing the previous one atomically."""
        self._checkpoint_dir.mkdir(parents=True, exist_ok=True)
        state_path = self._state_path()
        staging_path = state_path.with_suffix(".tmp")
        staging_path.write_text(json.dumps(asdict(state), indent=2) + "\n", encoding="utf-8")
        staging_path.replace(state_path)

    def clear(self) -> None:
        """Remove all checkpoint files."""
        if not self._checkpoint_dir.exists():
            return
        for file_path in self._checkpoint_dir.glob("*"):
            if file_path.is_file():
                file_path.unlink()

    def _read_state(self) -> ScanCheckpoint | None:
        """Read checkpoint state file if present."""
        state_path = self._state_path()
        if not state_path.exists():
            return None
        try:
            payload = json.loads(state_path.read_text(encoding="utf-8"))
            return ScanCheckpoint(
                run_signature=str(payload["run_signature"]),
                completed_sources=tuple(str(uri) for uri in payload["completed_sources"]),
                current_source=str(payload["current_source"])
                if payload["current_source"]
                else None,
                next_offset=int(payload["next_offset"]),
                chunk_index=int(payload["chunk_index"]),
                tail=str(payload["tail"]),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as error:
            raise DumpscanIngestError(
                f"Failed to read scan checkpoint state at {state_path}: {error}. "
                "Delete the checkpoint directory and retry the scan."
            ) from error

    def _state_path(self) -> Path:
        return self._checkpoint_dir / CHECKPOINT_STATE_FILE_NAME
