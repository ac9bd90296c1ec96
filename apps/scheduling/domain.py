"""Read-only session snapshot handed to the booking and payment core."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class SessionStatus(str, Enum):
    OPEN = "open"
    FULL = "full"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SessionSnapshot:
    id: UUID
    price_cents: int
    spots_remaining: int
    status: SessionStatus
    starts_at: datetime

    @property
    def is_open(self) -> bool:
        return self.status is SessionStatus.OPEN
