"""Model registry route."""

from fastapi import APIRouter

from specharness.llm.registry import DEFAULT_AUDITOR_MODEL_ID, DEFAULT_SELECTED_MODELS, MODEL_REGISTRY

router = APIRouter()


@router.get("/models")
async def list_models():
    """Selectable model ids plus the UI defaults."""
    return {
        "models": [m.model_dump() for m in MODEL_REGISTRY],
        "defaultSelected": list(DEFAULT_SELECTED_MODELS),
        "defaultAuditor": DEFAULT_AUDITOR_MODEL_ID,
    }
