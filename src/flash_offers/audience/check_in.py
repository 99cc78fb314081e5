"""CheckIn aggregate — a user's recorded visit to a venue.

Recent check-ins are the only location signal proximity targeting has.
"""

from protean.fields import DateTime, Identifier

from flash_offers.domain import flash_offers


@flash_offers.aggregate
class CheckIn:
    user_id: Identifier(required=True)
    venue_id: Identifier(required=True)
    created_at: DateTime(required=True)
