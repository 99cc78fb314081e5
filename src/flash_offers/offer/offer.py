"""FlashOffer aggregate — a time-limited discount published by a venue.

The dispatch engine only reads offers, apart from flipping ``push_sent``
once a non dry-run dispatch completes. The flag is one-way: an offer that
has been pushed is never pushed again.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from flash_offers.domain import flash_offers
from flash_offers.offer.events import OfferPushSent


@flash_offers.aggregate
class FlashOffer:
    """A flash offer awaiting (or past) its push notification."""

    venue_id: Identifier(required=True)

    # Content
    title: String(required=True, max_length=255)
    description: Text()
    discount_percentage: Integer(required=True, min_value=0, max_value=100)

    # Audience
    target_favorites_only: Boolean(default=False)
    radius_miles: Float(min_value=0.0)

    # Validity window
    starts_at: DateTime()
    expires_at: DateTime()

    # Dispatch
    push_sent: Boolean(default=False)
    push_sent_at: DateTime()

    created_at: DateTime()
    updated_at: DateTime()

    def mark_push_sent(self) -> None:
        """Flag the offer as pushed. Raises if it already was."""
        if self.push_sent:
            raise ValidationError({"push_sent": ["Push notification already sent for this offer"]})

        now = datetime.now(UTC)
        self.push_sent = True
        self.push_sent_at = now
        self.updated_at = now

        self.raise_(
            OfferPushSent(
                offer_id=str(self.id),
                venue_id=str(self.venue_id),
                sent_at=now,
            )
        )
