"""Repository for the NotificationPreference aggregate."""

from flash_offers.domain import flash_offers
from flash_offers.preference.preference import NotificationPreference


@flash_offers.repository(part_of=NotificationPreference)
class NotificationPreferenceRepository:
    def for_users(self, user_ids) -> dict[str, NotificationPreference]:
        """Map user id to preference for those users that have one stored."""
        ids = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        if not ids:
            return {}

        preferences = self._dao.query.filter(user_id__in=ids).limit(len(ids)).all().items
        return {str(preference.user_id): preference for preference in preferences}
