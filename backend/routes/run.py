"""Run submission route."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backend.deps import get_chat, get_store
from specharness.harness.service import execute_run
from specharness.llm.base import ChatProvider
from specharness.schemas.api_schemas import RunRequest
from specharness.store import RunStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/run")
async def submit_run(
    request: RunRequest,
    store: RunStore = Depends(get_store),
    chat: ChatProvider = Depends(get_chat),
):
    """Run every case against every selected model and produce the report artifacts."""
    outcome = await execute_run(request, store, chat=chat)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)
