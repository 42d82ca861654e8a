from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials posted to the demo login endpoint."""

    username: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., min_length=1, max_length=1024)


class LoginResponse(BaseModel):
    """Successful login acknowledgement."""

    status: str = Field("ok", description="Always 'ok' on success")
    username: str
