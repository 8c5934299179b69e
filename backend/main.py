"""FastAPI backend for the ModelSpec Harness."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from specharness.config import get_settings

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

settings = get_settings()

app = FastAPI(
    title="ModelSpec Harness API",
    description="Run compliance specs against several LLMs and export CSV / HTML / PDF / JSONL reports.",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
cors_origins = settings.cors_origin_list
cors_origin_regex = settings.cors_origin_regex
logger.info("CORS configured for origins: %s", cors_origins)
if cors_origin_regex:
    logger.info("CORS origin regex: %s", cors_origin_regex)

if settings.persistence_enabled:
    logger.info("Run artifacts are persisted under %s", settings.runs_dir)
else:
    logger.info("Run persistence disabled; artifacts are returned inline.")

cors_kw: dict = {
    "allow_origins": cors_origins,
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["*"],
    "expose_headers": ["*"],
}
if cors_origin_regex:
    cors_kw["allow_origin_regex"] = cors_origin_regex
app.add_middleware(CORSMiddleware, **cors_kw)


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------
class HealthResponse(BaseModel):
    status: str
    persistence_enabled: bool


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="ok", persistence_enabled=settings.persistence_enabled)


@app.get("/api/")
async def root():
    """API root."""
    return {"message": "ModelSpec Harness API", "version": "0.1.0"}


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
from backend.routes import models, run, runs  # noqa: E402

app.include_router(run.router, prefix="/api", tags=["run"])
app.include_router(runs.router, prefix="/api", tags=["runs"])
app.include_router(models.router, prefix="/api", tags=["models"])
