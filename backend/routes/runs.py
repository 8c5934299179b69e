"""Persisted run routes: list, metadata, artifact download, delete."""

import json
import logging
from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from backend.deps import get_store
from specharness.errors import InvalidPathError, StoreDisabledError
from specharness.schemas.api_schemas import RunListResponse
from specharness.store import META_FILENAME, RunStore

logger = logging.getLogger(__name__)
router = APIRouter()

MEDIA_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".csv": "text/csv; charset=utf-8",
    ".jsonl": "application/x-ndjson; charset=utf-8",
    ".json": "application/json",
    ".pdf": "application/pdf",
}


def _read(store: RunStore, run_id: str, filename: str) -> bytes:
    try:
        return store.read(run_id, filename)
    except InvalidPathError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (FileNotFoundError, StoreDisabledError):
        raise HTTPException(status_code=404, detail=f"Not found: {run_id}/{filename}")


@router.get("/runs")
async def list_runs(store: RunStore = Depends(get_store)):
    """Persisted runs, newest first."""
    summaries = store.list()
    payload = RunListResponse(
        runs=[s.model_dump(by_alias=True) for s in summaries],
        persistence_enabled=store.enabled,
    )
    return payload.model_dump(by_alias=True)


@router.get("/runs/{run_id}")
async def get_run(run_id: str, store: RunStore = Depends(get_store)):
    """Contents of the run's meta.json."""
    raw = _read(store, run_id, META_FILENAME)
    try:
        meta = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Corrupt meta.json for run %s", run_id)
        raise HTTPException(status_code=500, detail=f"Corrupt meta.json for run {run_id}")
    return {"ok": True, "runId": run_id, "meta": meta}


@router.get("/runs/{run_id}/download/{filename:path}")
async def download_artifact(run_id: str, filename: str, store: RunStore = Depends(get_store)):
    """Serve one artifact file of a run."""
    data = _read(store, run_id, filename)
    name = PurePosixPath(filename.replace("\\", "/")).name
    suffix = PurePosixPath(name).suffix.lower()
    media_type = MEDIA_TYPES.get(suffix, "application/octet-stream")
    disposition = "inline" if suffix == ".html" else "attachment"
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'{disposition}; filename="{name}"'},
    )


@router.delete("/runs/{run_id}")
async def delete_run(run_id: str, store: RunStore = Depends(get_store)):
    """Remove a run folder and all its artifacts."""
    try:
        deleted = store.delete(run_id)
    except InvalidPathError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    return {"ok": True, "runId": run_id, "deleted": True}
