"""Preference filtering for targeted candidates.

Applied after targeting and before rate limiting. Any candidate without a
stored preference passes; otherwise the candidate must have flash offers
enabled, be outside their quiet hours and be within their distance cap.
"""

from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo

import structlog

logger = structlog.get_logger(__name__)


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a ``time``."""
    parts = [int(part) for part in value.split(":")]
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time of day: {value!r}")
    return time(*parts)


def _seconds(moment: time) -> int:
    return moment.hour * 3600 + moment.minute * 60 + moment.second


def is_in_quiet_hours(start: str | None, end: str | None, timezone: str | None, now: datetime | None = None) -> bool:
    """Whether ``now`` falls in the ``[start, end)`` window in ``timezone``.

    Missing bounds mean no quiet hours. An unparseable time or unknown
    timezone fails open (returns False) and is logged.
    """
    if not start or not end:
        return False

    now = now or datetime.now(UTC)

    try:
        local = now.astimezone(ZoneInfo(timezone or "UTC"))
        start_seconds = _seconds(parse_time_of_day(start))
        end_seconds = _seconds(parse_time_of_day(end))
    except (ValueError, KeyError, TypeError) as exc:
        logger.warning(
            "Could not evaluate quiet hours, treating as outside",
            quiet_hours_start=start,
            quiet_hours_end=end,
            timezone=timezone,
            error=str(exc),
        )
        return False

    current = _seconds(local.time())

    # Window spans midnight
    if start_seconds > end_seconds:
        return current >= start_seconds or current < end_seconds
    return start_seconds <= current < end_seconds


class PreferenceFilter:
    """Drops candidates whose stored preferences rule out this notification."""

    def __init__(self, clock=None):
        self._clock = clock or (lambda: datetime.now(UTC))

    def filter(self, candidates, venue_latitude: float, venue_longitude: float) -> list:
        """Return the subset of ``candidates`` that may be notified, order kept.

        The distance cap is checked against each candidate's precomputed
        distance to the venue; the venue coordinates are only logged.
        """
        now = self._clock()
        kept = []
        excluded = {"disabled": 0, "quiet_hours": 0, "distance": 0}

        for candidate in candidates:
            prefs = candidate.preferences
            if prefs is None:
                kept.append(candidate)
                continue

            if prefs.flash_offers_enabled is False:
                excluded["disabled"] += 1
                continue

            if is_in_quiet_hours(prefs.quiet_hours_start, prefs.quiet_hours_end, prefs.timezone, now=now):
                excluded["quiet_hours"] += 1
                continue

            cap = prefs.max_distance_miles
            if cap is not None and cap > 0 and candidate.distance_miles > cap:
                excluded["distance"] += 1
                continue

            kept.append(candidate)

        logger.info(
            "Applied notification preferences",
            candidates=len(candidates),
            kept=len(kept),
            venue_latitude=venue_latitude,
            venue_longitude=venue_longitude,
            **{f"excluded_{reason}": count for reason, count in excluded.items()},
        )
        return kept
