"""Persist run history to a single JSON file.

The file holds an ordered list of RunRecord objects, capped at
MAX_HISTORY_ENTRIES (oldest dropped first). Every append rewrites the whole
file. A corrupt or unreadable file reads as an empty history, and a failed
write is logged rather than raised, so history problems never fail a run.

Single writer only: concurrent processes must serialize the read-modify-write
of append() themselves (last writer wins otherwise).
"""

import contextlib
import json
import logging
import os
import tempfile
import time
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from src.sla.errors import StorageUnavailableError
from src.sla.models import RunMetric, RunRecord, ValidationResult

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 50

_history_adapter: TypeAdapter[list[RunRecord]] = TypeAdapter(list[RunRecord])


def build_run_record(
    results: Sequence[ValidationResult],
    *,
    profile: str = "default",
    target_url: str | None = None,
    duration: str | None = None,
    now: datetime | None = None,
) -> RunRecord:
    """Create the history entry for a finished run from its validation results."""
    now = now or datetime.now(UTC)
    passed = sum(1 for r in results if r.passed)
    return RunRecord(
        id=f"run-{int(now.timestamp() * 1000)}-{uuid4().hex[:8]}",
        timestamp=now.isoformat(),
        profile=profile,
        target_url=target_url,
        duration=duration,
        metrics={r.metric: RunMetric(actual=r.actual, threshold=r.threshold, passed=r.passed) for r in results},
        passed_count=passed,
        failed_count=len(results) - passed,
    )


class RunHistoryStore:
    """Append-only, FIFO-bounded run history backed by a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> list[RunRecord]:
        """Return all persisted runs, oldest first. Never raises."""
        if not self.path.exists():
            return []
        try:
            raw: Any = json.loads(self.path.read_text(encoding="utf-8"))
            return _history_adapter.validate_python(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Run history at %s is unreadable, starting empty: %s", self.path, exc)
            return []

    def append(self, record: RunRecord) -> list[RunRecord]:
        """Add a run, evict the oldest beyond the cap and persist.

        Returns the updated history even when it could not be written.
        """
        history = [*self.load(), record]
        if len(history) > MAX_HISTORY_ENTRIES:
            history = history[-MAX_HISTORY_ENTRIES:]

        try:
            self._write(history)
        except StorageUnavailableError:
            logger.warning("Run %s was not persisted to history", record.id, exc_info=True)
        return history

    def _write(self, history: list[RunRecord]) -> None:
        start = time.monotonic()
        payload = _history_adapter.dump_python(history, mode="json")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Atomic write: write to temp file then rename
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        except OSError as exc:
            msg = f"Cannot write run history {self.path}: {exc}"
            raise StorageUnavailableError(msg) from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            msg = f"Cannot write run history {self.path}: {exc}"
            raise StorageUnavailableError(msg) from exc

        logger.debug("Wrote %d history entries in %.3fs", len(history), time.monotonic() - start)
