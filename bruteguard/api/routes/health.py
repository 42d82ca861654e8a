from __future__ import annotations

from fastapi import APIRouter

from bruteguard.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe; also reports which point store backend is configured."""

    return {"status": "ok", "store": settings.store.backend}
