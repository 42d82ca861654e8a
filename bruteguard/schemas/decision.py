from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class GateOutcome(str, Enum):
    """What the attempt gate decided for one request."""

    ALLOW = "allow"
    ALLOW_AND_RECORD_FAILURE = "allow_and_record_failure"
    DENY = "deny"


@dataclass(frozen=True)
class GateDecision:
    """Outcome plus, for DENY only, the earliest permitted retry (UTC)."""

    outcome: GateOutcome
    retry_not_before: datetime | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is not GateOutcome.DENY
