"""In-process run stores: a dict-backed store and the disabled (no-op) store."""

from __future__ import annotations

from typing import Any

from specharness.errors import StoreDisabledError
from specharness.schemas.models import RunSummary
from specharness.store.base import (
    created_at_from_meta,
    normalize_content,
    safe_filename,
    safe_run_id,
    sort_summaries,
)


class InMemoryRunStore:
    """Same contract as FileRunStore, kept in a dict. Lost on restart."""

    enabled = True

    def __init__(self) -> None:
        self._runs: dict[str, dict[str, bytes]] = {}

    def write(self, run_id: str, filename: str, content: Any) -> None:
        files = self._runs.setdefault(safe_run_id(run_id), {})
        files[safe_filename(filename)] = normalize_content(content)

    def read(self, run_id: str, filename: str) -> bytes:
        files = self._runs.get(safe_run_id(run_id), {})
        key = safe_filename(filename)
        if key not in files:
            raise FileNotFoundError(f"{run_id}/{filename}")
        return files[key]

    def list(self) -> list[RunSummary]:
        return sort_summaries([
            RunSummary(run_id=run_id, created_at=created_at_from_meta(files.get("meta.json", b"")))
            for run_id, files in self._runs.items()
        ])

    def exists(self, run_id: str) -> bool:
        return safe_run_id(run_id) in self._runs

    def delete(self, run_id: str) -> bool:
        return self._runs.pop(safe_run_id(run_id), None) is not None


class DisabledRunStore:
    """Used where the filesystem is read-only or ephemeral. Nothing is kept."""

    enabled = False

    def write(self, run_id: str, filename: str, content: Any) -> None:
        safe_run_id(run_id)
        safe_filename(filename)

    def read(self, run_id: str, filename: str) -> bytes:
        raise StoreDisabledError("Run persistence is disabled in this environment.")

    def list(self) -> list[RunSummary]:
        return []

    def exists(self, run_id: str) -> bool:
        return False

    def delete(self, run_id: str) -> bool:
        return False
