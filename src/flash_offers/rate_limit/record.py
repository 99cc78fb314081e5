"""RateLimitRecord aggregate — one counted send or receive.

Counters are append-only: every increment writes a fresh record and a
scope's effective count is the sum over records whose window started in
the last 24 hours. Nothing is updated in place, so no read-modify-write
lock is needed; concurrent bursts for the same scope may briefly
over-admit.
"""

from datetime import datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from flash_offers.domain import flash_offers

WINDOW = timedelta(hours=24)


class LimitType(Enum):
    VENUE_SEND = "venue_send"
    USER_RECEIVE = "user_receive"


@flash_offers.aggregate
class RateLimitRecord:
    limit_type: String(choices=LimitType, required=True)

    # Exactly one owner, matching the limit type
    venue_id: Identifier()
    user_id: Identifier()

    count: Integer(default=1, min_value=1)
    window_start: DateTime(required=True)
    expires_at: DateTime(required=True)

    @invariant.post
    def owner_matches_limit_type(self):
        if self.limit_type == LimitType.VENUE_SEND.value and (not self.venue_id or self.user_id):
            raise ValidationError({"venue_id": ["Venue send records are owned by a venue only"]})
        if self.limit_type == LimitType.USER_RECEIVE.value and (not self.user_id or self.venue_id):
            raise ValidationError({"user_id": ["User receive records are owned by a user only"]})

    @classmethod
    def venue_send(cls, venue_id, now: datetime) -> "RateLimitRecord":
        return cls(
            limit_type=LimitType.VENUE_SEND.value,
            venue_id=str(venue_id),
            count=1,
            window_start=now,
            expires_at=now + WINDOW,
        )

    @classmethod
    def user_receive(cls, user_id, now: datetime) -> "RateLimitRecord":
        return cls(
            limit_type=LimitType.USER_RECEIVE.value,
            user_id=str(user_id),
            count=1,
            window_start=now,
            expires_at=now + WINDOW,
        )
