"""Domain events for the FlashOffer aggregate."""

from protean.fields import DateTime, Identifier

from flash_offers.domain import flash_offers


@flash_offers.event(part_of="FlashOffer")
class OfferPushSent:
    """The offer's push notification went out and the offer was flagged."""

    __version__ = 1

    offer_id: Identifier(required=True)
    venue_id: Identifier(required=True)
    sent_at: DateTime(required=True)
