"""
Main API router. Mounts all sub-routers.
"""

from fastapi import APIRouter

router = APIRouter()


# ── Health ───────────────────────────────────────────────────────────

@router.get("/health")
async def health():
    from ..services.llm import get_llm_client

    return {
        "status": "ok",
        "service": "consultores",
        "llm_configured": get_llm_client().is_configured,
    }


# ── V1 routes ────────────────────────────────────────────────────────

from .identity import identity_router  # noqa: E402
from .sessions import sessions_router  # noqa: E402

router.include_router(identity_router, prefix="/v1")
router.include_router(sessions_router, prefix="/v1")
