"""Versioned dashboard API mounted under ``/api/v1``."""

from fastapi import APIRouter

from biolink.api.v1.links import router as links_router

router = APIRouter(prefix="/api/v1")

router.include_router(links_router)


@router.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Liveness probe; touches neither the database nor Redis."""
    return {"status": "healthy"}
