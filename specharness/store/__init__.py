"""Run artifact storage (filesystem, in-memory or disabled)."""

from __future__ import annotations

import logging

from specharness.config import Settings, get_settings
from specharness.store.base import RunStore, normalize_content, safe_filename, safe_run_id
from specharness.store.file_store import META_FILENAME, FileRunStore
from specharness.store.memory_store import DisabledRunStore, InMemoryRunStore

logger = logging.getLogger(__name__)


def get_run_store(settings: Settings | None = None) -> RunStore:
    """
    Factory that returns the run store for this environment.

    DISABLE_RUNS_PERSIST=1 disables persistence, FORCE_RUNS_PERSIST=1 forces it,
    and VERCEL=1 disables it unless forced. Otherwise runs are written under
    SPECHARNESS_RUNS_DIR.
    """
    s = settings or get_settings()
    if not s.persistence_enabled:
        logger.info("Run persistence disabled")
        return DisabledRunStore()
    return FileRunStore(s.runs_dir)


__all__ = [
    "DisabledRunStore",
    "FileRunStore",
    "InMemoryRunStore",
    "META_FILENAME",
    "RunStore",
    "get_run_store",
    "normalize_content",
    "safe_filename",
    "safe_run_id",
]
