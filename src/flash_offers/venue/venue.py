"""Venue aggregate — the business publishing flash offers.

Only the attributes dispatch needs are modelled: a display name, an
optional location and the subscription tier that sets the daily offer
quota.
"""

from enum import Enum

from protean.fields import DateTime, Float, String

from flash_offers.domain import flash_offers


class SubscriptionTier(Enum):
    FREE = "free"
    CORE = "core"
    PRO = "pro"
    REVENUE = "revenue"


@flash_offers.aggregate
class Venue:
    name: String(required=True, max_length=255)

    latitude: Float(min_value=-90.0, max_value=90.0)
    longitude: Float(min_value=-180.0, max_value=180.0)

    # Free-form so unknown tiers can be stored and fall back at read time
    subscription_tier: String(max_length=50, default=SubscriptionTier.FREE.value)

    created_at: DateTime()
    updated_at: DateTime()

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def tier(self) -> SubscriptionTier:
        """Subscription tier, treating missing or unknown values as free."""
        try:
            return SubscriptionTier((self.subscription_tier or "").lower())
        except ValueError:
            return SubscriptionTier.FREE
