"""Run store interface and the path / content helpers shared by implementations."""

from __future__ import annotations

import json
import posixpath
from typing import Any, Protocol

from specharness.errors import InvalidPathError
from specharness.schemas.models import RunSummary


class RunStore(Protocol):
    """Where run artifacts live: ``<root>/<run_id>/<filename>``."""

    @property
    def enabled(self) -> bool: ...
    def write(self, run_id: str, filename: str, content: Any) -> None: ...
    def read(self, run_id: str, filename: str) -> bytes: ...
    def list(self) -> list[RunSummary]: ...
    def delete(self, run_id: str) -> bool: ...
    def exists(self, run_id: str) -> bool: ...


def _clean_segments(raw: str, what: str) -> list[str]:
    value = (raw or "").strip().replace("\\", "/")
    if not value:
        raise InvalidPathError(f"Empty {what}.")
    if value.startswith("/") or (len(value) > 1 and value[1] == ":"):
        raise InvalidPathError(f"Absolute {what} is not allowed: {raw!r}")
    parts = value.split("/")
    if any(p == ".." for p in parts):
        raise InvalidPathError(f"Path traversal in {what}: {raw!r}")
    normalized = posixpath.normpath(value)
    if normalized in (".", "") or normalized.startswith(".."):
        raise InvalidPathError(f"Invalid {what}: {raw!r}")
    return [p for p in normalized.split("/") if p not in ("", ".")]


def safe_run_id(run_id: str) -> str:
    """A run id must be a single path segment."""
    parts = _clean_segments(run_id, "run id")
    if len(parts) != 1:
        raise InvalidPathError(f"Run id must not contain path separators: {run_id!r}")
    return parts[0]


def safe_filename(filename: str) -> str:
    """Relative artifact path under a run folder; subfolders allowed."""
    return "/".join(_clean_segments(filename, "filename"))


def normalize_content(content: Any) -> bytes:
    """bytes as-is, str as UTF-8, None as empty, anything else as indented JSON."""
    if content is None:
        return b""
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if isinstance(content, str):
        return content.encode("utf-8")
    return json.dumps(content, indent=2, ensure_ascii=False).encode("utf-8")


def created_at_from_meta(raw: bytes) -> str:
    """createdAt from a meta.json payload; empty when missing or unparsable."""
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return ""
    if isinstance(data, dict) and isinstance(data.get("createdAt"), str):
        return data["createdAt"]
    return ""


def sort_summaries(summaries: list[RunSummary]) -> list[RunSummary]:
    """Newest first; runs without a timestamp last."""
    return sorted(summaries, key=lambda s: (s.created_at, s.run_id), reverse=True)
