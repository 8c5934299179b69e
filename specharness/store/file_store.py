"""Filesystem run store: one folder per run under the runs root."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from specharness.errors import InvalidPathError
from specharness.schemas.models import RunSummary
from specharness.store.base import (
    created_at_from_meta,
    normalize_content,
    safe_filename,
    safe_run_id,
    sort_summaries,
)

logger = logging.getLogger(__name__)

META_FILENAME = "meta.json"


class FileRunStore:
    """Persist run artifacts as files. Each write is temp-file + atomic rename."""

    enabled = True

    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _run_dir(self, run_id: str) -> Path:
        path = (self._root / safe_run_id(run_id)).resolve()
        if path.parent != self._root:
            raise InvalidPathError(f"Run id escapes the runs root: {run_id!r}")
        return path

    def _file_path(self, run_id: str, filename: str) -> Path:
        run_dir = self._run_dir(run_id)
        path = (run_dir / safe_filename(filename)).resolve()
        if run_dir not in path.parents:
            raise InvalidPathError(f"Filename escapes the run folder: {filename!r}")
        return path

    def write(self, run_id: str, filename: str, content: Any) -> None:
        path = self._file_path(run_id, filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = normalize_content(content)

        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
        logger.debug("Wrote %s (%d bytes)", path, len(data))

    def read(self, run_id: str, filename: str) -> bytes:
        """Raises FileNotFoundError when the artifact does not exist."""
        path = self._file_path(run_id, filename)
        if not path.is_file():
            raise FileNotFoundError(f"{run_id}/{filename}")
        return path.read_bytes()

    def list(self) -> list[RunSummary]:
        if not self._root.is_dir():
            return []
        summaries: list[RunSummary] = []
        for entry in self._root.iterdir():
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            meta_path = entry / META_FILENAME
            created_at = ""
            if meta_path.is_file():
                try:
                    created_at = created_at_from_meta(meta_path.read_bytes())
                except OSError as e:
                    logger.warning("Could not read %s: %s", meta_path, e)
            summaries.append(RunSummary(run_id=entry.name, created_at=created_at))
        return sort_summaries(summaries)

    def exists(self, run_id: str) -> bool:
        return self._run_dir(run_id).is_dir()

    def delete(self, run_id: str) -> bool:
        run_dir = self._run_dir(run_id)
        if not run_dir.is_dir():
            return False
        shutil.rmtree(run_dir)
        logger.info("Deleted run %s", run_id)
        return True
