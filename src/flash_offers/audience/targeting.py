"""Audience resolution for a flash offer.

Three modes, checked in order:

* favorites only: users who favorited the venue (distance reported as 0)
* broadcast: radius at or above the broadcast threshold targets every user
  with an active device registration (distance 0)
* proximity: users with a check-in inside the lookback window at a venue
  within the radius, keeping each user's closest distance

Every surviving user is expanded to one candidate per active device
registration, annotated with the user's stored preferences.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from protean.utils.globals import current_domain

from flash_offers.audience.check_in import CheckIn
from flash_offers.audience.device import DeviceRegistration
from flash_offers.audience.favorite import Favorite
from flash_offers.audience.geo import haversine_miles
from flash_offers.preference.preference import NotificationPreference
from flash_offers.venue.venue import Venue

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Candidate:
    """One deliverable device for one user."""

    user_id: str
    device_token: str
    platform: str
    preferences: NotificationPreference | None
    distance_miles: float


class TargetingResolver:
    def __init__(
        self,
        broadcast_radius_miles: float = 500.0,
        lookback_days: int = 30,
        checkin_scan_limit: int = 1000,
        clock=None,
    ):
        self.broadcast_radius_miles = broadcast_radius_miles
        self.lookback_days = lookback_days
        self.checkin_scan_limit = checkin_scan_limit
        self._clock = clock or (lambda: datetime.now(UTC))

    def resolve(self, venue: Venue, radius_miles: float, favorites_only: bool) -> list[Candidate]:
        """Candidates for ``venue``. Storage errors propagate to the caller."""
        if favorites_only:
            user_ids = current_domain.repository_for(Favorite).user_ids_for_venue(venue.id)
            distances = dict.fromkeys(user_ids, 0.0)
            mode = "favorites"
        elif radius_miles >= self.broadcast_radius_miles:
            user_ids = current_domain.repository_for(DeviceRegistration).active_user_ids()
            distances = dict.fromkeys(user_ids, 0.0)
            mode = "broadcast"
        else:
            distances = self._nearby_users(venue, radius_miles)
            mode = "proximity"

        logger.info(
            "Resolved target users",
            venue_id=str(venue.id),
            mode=mode,
            radius_miles=radius_miles,
            users=len(distances),
        )

        if not distances:
            return []

        registrations = current_domain.repository_for(DeviceRegistration).active_for_users(distances.keys())
        if not registrations:
            logger.info("No active device registrations for targeted users", venue_id=str(venue.id))
            return []

        preferences = self._preferences_for({str(r.user_id) for r in registrations})

        return [
            Candidate(
                user_id=str(registration.user_id),
                device_token=registration.token,
                platform=registration.platform,
                preferences=preferences.get(str(registration.user_id)),
                distance_miles=distances.get(str(registration.user_id), 0.0),
            )
            for registration in registrations
        ]

    def _nearby_users(self, venue: Venue, radius_miles: float) -> dict[str, float]:
        since = self._clock() - timedelta(days=self.lookback_days)
        check_ins = current_domain.repository_for(CheckIn).recent(since, self.checkin_scan_limit)
        if not check_ins:
            return {}

        coordinates = current_domain.repository_for(Venue).coordinates_for(c.venue_id for c in check_ins)

        closest: dict[str, float] = {}
        for check_in in check_ins:
            location = coordinates.get(str(check_in.venue_id))
            if location is None:
                continue

            distance = haversine_miles(venue.latitude, venue.longitude, *location)
            if distance > radius_miles:
                continue

            user_id = str(check_in.user_id)
            if user_id not in closest or distance < closest[user_id]:
                closest[user_id] = distance

        return closest

    def _preferences_for(self, user_ids) -> dict[str, NotificationPreference]:
        try:
            return current_domain.repository_for(NotificationPreference).for_users(user_ids)
        except Exception as exc:
            # Without preferences every candidate is treated as opted in
            logger.error("Failed to load notification preferences", error=str(exc))
            return {}
