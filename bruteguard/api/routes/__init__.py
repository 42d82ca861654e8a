from __future__ import annotations

from bruteguard.api.routes.auth import build_auth_router
from bruteguard.api.routes.health import router as health_router

__all__ = ["build_auth_router", "health_router"]
