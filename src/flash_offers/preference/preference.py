"""NotificationPreference aggregate — a user's flash offer notification settings.

Users without a stored preference are treated as fully opted in. Quiet
hours are wall-clock times (``HH:MM`` or ``HH:MM:SS``) interpreted in the
user's own IANA timezone; a window whose start is later than its end
spans midnight.
"""

import re

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String

from flash_offers.domain import flash_offers

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


@flash_offers.aggregate
class NotificationPreference:
    user_id: Identifier(required=True, unique=True)

    flash_offers_enabled: Boolean(default=True)

    # Quiet hours (DND), local to ``timezone``
    quiet_hours_start: String(max_length=8)  # "22:00" or "22:00:00"
    quiet_hours_end: String(max_length=8)
    timezone: String(max_length=64, default="UTC")

    # Zero or unset means no cap
    max_distance_miles: Float(min_value=0.0)

    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def quiet_hours_must_be_times_of_day(self):
        for name in ("quiet_hours_start", "quiet_hours_end"):
            value = getattr(self, name)
            if value and not TIME_OF_DAY_PATTERN.match(value):
                raise ValidationError({name: ["Expected HH:MM or HH:MM:SS"]})
