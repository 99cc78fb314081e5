"""Repository for rate-limit counters."""

from datetime import datetime

from protean.core.unit_of_work import UnitOfWork

from flash_offers.domain import flash_offers
from flash_offers.rate_limit.record import LimitType, RateLimitRecord

MAX_COUNTER_ROWS = 1_000_000


@flash_offers.repository(part_of=RateLimitRecord)
class RateLimitRecordRepository:
    def venue_records_since(self, venue_id: str, since: datetime) -> list[RateLimitRecord]:
        return (
            self._dao.query.filter(
                limit_type=LimitType.VENUE_SEND.value,
                venue_id=str(venue_id),
                window_start__gte=since,
            )
            .limit(MAX_COUNTER_ROWS)
            .all()
            .items
        )

    def user_records_since(self, user_ids, since: datetime) -> list[RateLimitRecord]:
        """Receive records for any of ``user_ids`` in one query."""
        ids = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        if not ids:
            return []

        return (
            self._dao.query.filter(
                limit_type=LimitType.USER_RECEIVE.value,
                user_id__in=ids,
                window_start__gte=since,
            )
            .limit(MAX_COUNTER_ROWS)
            .all()
            .items
        )

    def append(self, records: list[RateLimitRecord]) -> int:
        """Persist new counter records together."""
        if not records:
            return 0

        with UnitOfWork():
            for record in records:
                self.add(record)
        return len(records)
