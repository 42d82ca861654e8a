"""Demo login endpoint guarded per client address and per username."""

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from bruteguard.core.brute_force import BruteAttempt, BruteForceGuard
from bruteguard.core.config import settings
from bruteguard.core.errors import AuthenticationAppError
from bruteguard.core.logging import hash_identity
from bruteguard.schemas.auth import LoginRequest, LoginResponse

logger = logging.getLogger(__name__)


async def username_from_body(request: Request) -> str | None:
    """Key extractor reading ``username`` from a JSON body."""
    try:
        body = await request.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    username = body.get("username")
    return username if isinstance(username, str) else None


def _credentials_match(payload: LoginRequest) -> bool:
    expected = settings.app.demo_password
    if not expected:
        return False
    username_ok = secrets.compare_digest(payload.username, settings.app.demo_username)
    password_ok = secrets.compare_digest(payload.password, expected)
    return username_ok and password_ok


def build_auth_router(guard: BruteForceGuard) -> APIRouter:
    """Create the login router bound to ``guard``.

    The same guard protects the endpoint twice: once keyed by client
    address and once by username regardless of address. A successful login
    clears both through the attempts, whether or not reset handles are
    attached to the request.
    """
    router = APIRouter(tags=["Auth"])
    by_username = guard.dependency(key=username_from_body, ignore_ip=True)

    @router.post(
        "/auth/login",
        response_model=LoginResponse,
        responses={
            401: {"description": "Invalid credentials"},
            429: {"description": "Too many failed attempts; see Retry-After"},
        },
    )
    async def login(
        payload: LoginRequest,
        ip_attempt: Annotated[BruteAttempt, Depends(guard.prevent)],
        user_attempt: Annotated[BruteAttempt, Depends(by_username)],
    ) -> LoginResponse:
        """Check demo credentials; failures count toward the lockout."""
        if not _credentials_match(payload):
            logger.warning(
                "auth.login_failed",
                extra={
                    "username_hash": hash_identity(payload.username),
                    "ip_outcome": ip_attempt.outcome.value,
                    "user_outcome": user_attempt.outcome.value,
                },
            )
            raise AuthenticationAppError(
                code="invalid_credentials",
                message="Invalid username or password",
            )

        await ip_attempt.reset()
        await user_attempt.reset()
        logger.info(
            "auth.login_succeeded",
            extra={"username_hash": hash_identity(payload.username)},
        )
        return LoginResponse(username=payload.username)

    return router
