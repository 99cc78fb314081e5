"""Repositories for the audience aggregates."""

from datetime import datetime

from flash_offers.audience.check_in import CheckIn
from flash_offers.audience.device import DeviceRegistration
from flash_offers.audience.favorite import Favorite
from flash_offers.domain import flash_offers

# Upper bound for unpaginated audience scans
MAX_AUDIENCE_ROWS = 1_000_000


@flash_offers.repository(part_of=DeviceRegistration)
class DeviceRegistrationRepository:
    def active_for_users(self, user_ids) -> list[DeviceRegistration]:
        """Active registrations belonging to any of ``user_ids``."""
        ids = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        if not ids:
            return []

        return (
            self._dao.query.filter(is_active=True, user_id__in=ids)
            .limit(MAX_AUDIENCE_ROWS)
            .all()
            .items
        )

    def active_user_ids(self) -> list[str]:
        """Distinct owners of at least one active registration."""
        registrations = self._dao.query.filter(is_active=True).limit(MAX_AUDIENCE_ROWS).all().items
        return list(dict.fromkeys(str(registration.user_id) for registration in registrations))

    def with_tokens(self, tokens) -> list[DeviceRegistration]:
        tokens = list(dict.fromkeys(tokens))
        if not tokens:
            return []
        return self._dao.query.filter(token__in=tokens).limit(MAX_AUDIENCE_ROWS).all().items


@flash_offers.repository(part_of=CheckIn)
class CheckInRepository:
    def recent(self, since: datetime, limit: int) -> list[CheckIn]:
        """Check-ins at or after ``since``, newest first, capped at ``limit``."""
        return self._dao.query.filter(created_at__gte=since).order_by("-created_at").limit(limit).all().items


@flash_offers.repository(part_of=Favorite)
class FavoriteRepository:
    def user_ids_for_venue(self, venue_id: str) -> list[str]:
        favorites = self._dao.query.filter(venue_id=str(venue_id)).limit(MAX_AUDIENCE_ROWS).all().items
        return list(dict.fromkeys(str(favorite.user_id) for favorite in favorites))
