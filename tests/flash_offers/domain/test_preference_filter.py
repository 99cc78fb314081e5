"""Tests for PreferenceFilter over targeted candidates."""

from datetime import UTC, datetime

from flash_offers.audience.targeting import Candidate
from flash_offers.preference.filtering import PreferenceFilter
from flash_offers.preference.preference import NotificationPreference

MIDNIGHT_UTC = datetime(2026, 1, 15, 0, 0, tzinfo=UTC)
NOON_UTC = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def _candidate(user_id, distance=0.0, **preference):
    prefs = NotificationPreference(user_id=user_id, **preference) if preference else None
    return Candidate(
        user_id=user_id,
        device_token=f"{user_id}-token",
        platform="ios",
        preferences=prefs,
        distance_miles=distance,
    )


def _filter(candidates, now=NOON_UTC):
    return PreferenceFilter(clock=lambda: now).filter(candidates, 40.7128, -74.0060)


class TestPreferenceFilter:
    def test_users_without_preferences_pass(self):
        candidates = [_candidate("user-1"), _candidate("user-2")]
        assert _filter(candidates) == candidates

    def test_disabled_users_are_excluded(self):
        kept = _filter([_candidate("user-1", flash_offers_enabled=False), _candidate("user-2")])
        assert [c.user_id for c in kept] == ["user-2"]

    def test_quiet_hours_exclude_at_midnight(self):
        sleeper = _candidate("user-1", quiet_hours_start="22:00", quiet_hours_end="07:00", timezone="UTC")
        assert _filter([sleeper], now=MIDNIGHT_UTC) == []
        assert _filter([sleeper], now=NOON_UTC) == [sleeper]

    def test_distance_cap(self):
        near = _candidate("user-1", distance=2.0, max_distance_miles=3.0)
        far = _candidate("user-2", distance=4.0, max_distance_miles=3.0)
        assert _filter([near, far]) == [near]

    def test_zero_cap_means_no_cap(self):
        far = _candidate("user-1", distance=400.0, max_distance_miles=0.0)
        assert _filter([far]) == [far]

    def test_order_is_preserved(self):
        candidates = [_candidate(f"user-{i}") for i in range(5)]
        candidates.insert(2, _candidate("user-x", flash_offers_enabled=False))
        kept = _filter(candidates)
        assert [c.user_id for c in kept] == [f"user-{i}" for i in range(5)]

    def test_empty_input(self):
        assert _filter([]) == []
