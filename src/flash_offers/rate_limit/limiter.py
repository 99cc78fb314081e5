"""Rolling 24-hour quotas for venue sends and user receives.

A venue's daily send ceiling depends on its subscription tier; every user
shares the same daily receive ceiling. Checks fail open: when the counter
store cannot be read the request is allowed and the failure is logged,
since missing a time-sensitive offer is worse than a slight overshoot.
"""

import math
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from flash_offers.rate_limit.record import WINDOW, RateLimitRecord
from flash_offers.venue.venue import SubscriptionTier

logger = structlog.get_logger(__name__)

UNLIMITED = -1

TIER_RATE_LIMITS = {
    SubscriptionTier.FREE: 3,
    SubscriptionTier.CORE: 5,
    SubscriptionTier.PRO: 10,
    SubscriptionTier.REVENUE: UNLIMITED,
}

USER_DAILY_LIMIT = 10


def limit_for_tier(tier: SubscriptionTier | str | None) -> int:
    """Daily send ceiling for a tier; unknown or missing tiers get the free ceiling."""
    if not isinstance(tier, SubscriptionTier):
        try:
            tier = SubscriptionTier((tier or "").lower())
        except ValueError:
            tier = SubscriptionTier.FREE
    return TIER_RATE_LIMITS[tier]


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    current_count: int
    limit: int
    resets_at: datetime | None = None

    def retry_after_seconds(self, now: datetime | None = None) -> int:
        """Whole seconds until the quota resets, a full window when unknown."""
        if self.resets_at is None:
            return int(WINDOW.total_seconds())
        now = now or datetime.now(UTC)
        return max(0, math.ceil((self.resets_at - now).total_seconds()))


def _window_usage(records) -> tuple[int, datetime | None]:
    """Sum of counts and the reset instant (earliest window start plus 24h)."""
    if not records:
        return 0, None
    count = sum(record.count for record in records)
    earliest = min(record.window_start for record in records)
    return count, earliest + WINDOW


class RateLimiter:
    def __init__(self, user_limit: int = USER_DAILY_LIMIT, clock=None):
        self.user_limit = user_limit
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def _repository(self):
        return current_domain.repository_for(RateLimitRecord)

    # -------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------
    def check_venue_limit(self, venue_id: str, tier) -> RateLimitResult:
        limit = limit_for_tier(tier)
        if limit == UNLIMITED:
            return RateLimitResult(allowed=True, current_count=0, limit=UNLIMITED)

        since = self._clock() - WINDOW
        try:
            records = self._repository.venue_records_since(venue_id, since)
        except Exception as exc:
            logger.error("Venue rate limit check failed, allowing send", venue_id=str(venue_id), error=str(exc))
            return RateLimitResult(allowed=True, current_count=0, limit=limit)

        count, resets_at = _window_usage(records)
        logger.info("Venue rate limit checked", venue_id=str(venue_id), current=count, limit=limit)
        return RateLimitResult(allowed=count < limit, current_count=count, limit=limit, resets_at=resets_at)

    def check_user_limit(self, user_id: str) -> RateLimitResult:
        since = self._clock() - WINDOW
        try:
            records = self._repository.user_records_since([user_id], since)
        except Exception as exc:
            logger.error("User rate limit check failed, allowing receive", user_id=str(user_id), error=str(exc))
            return RateLimitResult(allowed=True, current_count=0, limit=self.user_limit)

        count, resets_at = _window_usage(records)
        return RateLimitResult(
            allowed=count < self.user_limit, current_count=count, limit=self.user_limit, resets_at=resets_at
        )

    def filter_users_by_limit(self, user_ids) -> list[str]:
        """Users still under their receive ceiling, order kept.

        Counts for all users are read in one query rather than one check
        per user.
        """
        user_ids = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        if not user_ids:
            return []

        since = self._clock() - WINDOW
        try:
            records = self._repository.user_records_since(user_ids, since)
        except Exception as exc:
            logger.error("Bulk user rate limit check failed, allowing all", users=len(user_ids), error=str(exc))
            return user_ids

        counts = dict.fromkeys(user_ids, 0)
        for record in records:
            counts[str(record.user_id)] = counts.get(str(record.user_id), 0) + record.count

        allowed = [user_id for user_id in user_ids if counts[user_id] < self.user_limit]
        if len(allowed) < len(user_ids):
            logger.info("Users excluded by receive limit", excluded=len(user_ids) - len(allowed))
        return allowed

    # -------------------------------------------------------------------
    # Increments
    # -------------------------------------------------------------------
    def increment_venue(self, venue_id: str) -> bool:
        try:
            self._repository.append([RateLimitRecord.venue_send(venue_id, self._clock())])
        except Exception as exc:
            logger.error("Failed to increment venue rate limit", venue_id=str(venue_id), error=str(exc))
            return False
        return True

    def increment_users(self, user_ids) -> int:
        """Append one receive record per distinct user. Returns records written."""
        user_ids = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        if not user_ids:
            return 0

        now = self._clock()
        try:
            return self._repository.append([RateLimitRecord.user_receive(user_id, now) for user_id in user_ids])
        except Exception as exc:
            logger.error("Failed to increment user rate limits", users=len(user_ids), error=str(exc))
            return 0
