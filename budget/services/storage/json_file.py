"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON file is the default backend because:
1. The whole ledger is one small blob
2. No database setup required
3. The file doubles as a human-readable backup

Writes go to a temporary file first and are moved into place, so a
crash mid-write never leaves a truncated blob behind. Transient OS
errors are retried with tenacity.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget.config import get_settings
from budget.models.audit import AuditEvent
from budget.services.storage.interface import (
    AuditSinkInterface,
    StateStorageInterface,
    StorageReadError,
    StorageWriteError,
)


class JsonFileStateStorage(StateStorageInterface):
    """
    Stores the state blob at <data_dir>/<state_key>.json.

    The blob is written byte-for-byte as given, so an export of the
    stored text matches what load() returns.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        save_attempts: Optional[int] = None,
    ):
        settings = get_settings().storage
        self._path = Path(path) if path is not None else settings.state_path
        self._save_attempts = save_attempts or settings.save_attempts

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[str]:
        if not self._path.exists():
            return None
        try:
            return self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Failed to read state from {self._path}: {e}") from e

    def _write(self, blob: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.stem}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(blob)
            os.replace(tmp_name, self._path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def save(self, blob: str) -> bool:
        retrying = Retrying(
            stop=stop_after_attempt(self._save_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        try:
            retrying(self._write, blob)
        except OSError as e:
            raise StorageWriteError(f"Failed to save state to {self._path}: {e}") from e
        return True


class JsonLinesAuditSink(AuditSinkInterface):
    """Append-only audit log, one JSON object per line."""

    def __init__(self, path: Path):
        self._path = Path(path)

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(event.to_json_line() + "\n")
        except OSError as e:
            raise StorageWriteError(f"Failed to append audit event: {e}") from e
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageReadError(f"Failed to read audit log: {e}") from e

        events = [
            AuditEvent.model_validate_json(line)
            for line in lines[-limit:]
            if line.strip()
        ]
        events.reverse()
        return events
