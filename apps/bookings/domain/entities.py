"""
Booking Domain Entities

Immutable snapshots of a booking as the orchestrators see it. State changes
happen through status-guarded writes in the repositories, never by mutating
these objects.

State machine:
    reserved --[payment succeeded]--> confirmed
    reserved|confirmed --[cancel]--> cancelled (terminal)
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class BookingStatus(str, Enum):
    RESERVED = 'reserved'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'


CANCELLABLE_STATUSES = frozenset({BookingStatus.RESERVED, BookingStatus.CONFIRMED})


@dataclass(frozen=True)
class Booking:
    id: UUID
    session_id: UUID
    user_id: UUID
    status: BookingStatus
    reserved_at: datetime
    guests: int = 0
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status is BookingStatus.CANCELLED

    @property
    def spots_held(self) -> int:
        """The booker plus any guests they brought"""
        return 1 + self.guests

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id
