"""Validated brute-force protection policy."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bruteguard.core.config import BruteSettings
from bruteguard.services.delay_schedule import build_delays


class BrutePolicy(BaseModel):
    """Immutable policy shared by the gate and its stores.

    Attributes:
        free_retries: Attempts allowed before any delay kicks in.
        min_wait_ms: First lockout delay; values below 1 become 1.
        max_wait_ms: Lockout delay ceiling.
        lifetime_seconds: Counter lifetime; derived when None.
        attach_reset_to_request: Whether guarded requests get a reset handle.
    """

    model_config = ConfigDict(frozen=True)

    free_retries: int = Field(2, ge=0)
    min_wait_ms: int = 500
    max_wait_ms: int = Field(1000 * 60 * 15, ge=1)
    lifetime_seconds: int | None = Field(None, ge=1)
    attach_reset_to_request: bool = True

    @field_validator("min_wait_ms")
    @classmethod
    def _floor_min_wait(cls, value: int) -> int:
        return max(value, 1)

    @model_validator(mode="after")
    def _check_wait_bounds(self) -> "BrutePolicy":
        if self.max_wait_ms < self.min_wait_ms:
            raise ValueError("max_wait_ms must be >= min_wait_ms")
        return self

    @classmethod
    def from_settings(cls, brute_settings: BruteSettings) -> "BrutePolicy":
        return cls(
            free_retries=brute_settings.free_retries,
            min_wait_ms=brute_settings.min_wait_ms,
            max_wait_ms=brute_settings.max_wait_ms,
            lifetime_seconds=brute_settings.lifetime_seconds,
            attach_reset_to_request=brute_settings.attach_reset_to_request,
        )

    @property
    def delays(self) -> tuple[int, ...]:
        return build_delays(self.min_wait_ms, self.max_wait_ms)

    @property
    def lifetime(self) -> int:
        """Counter lifetime in seconds.

        Defaults to enough time for every scheduled delay plus the free
        retries at the maximum wait.
        """
        if self.lifetime_seconds is not None:
            return self.lifetime_seconds
        return math.ceil((self.max_wait_ms / 1000) * (len(self.delays) + self.free_retries))

    @property
    def free_points(self) -> int:
        return max(self.free_retries - 1, 0)

    @property
    def block_duration(self) -> int:
        return min(self.lifetime, math.ceil(self.max_wait_ms / 1000))
