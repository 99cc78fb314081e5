"""Favorite aggregate — a user bookmarking a venue."""

from protean.fields import DateTime, Identifier

from flash_offers.domain import flash_offers


@flash_offers.aggregate
class Favorite:
    user_id: Identifier(required=True)
    venue_id: Identifier(required=True)
    created_at: DateTime()
