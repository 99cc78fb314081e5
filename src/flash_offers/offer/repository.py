"""Repository for the FlashOffer aggregate."""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from flash_offers.domain import flash_offers
from flash_offers.offer.offer import FlashOffer

logger = structlog.get_logger(__name__)


@flash_offers.repository(part_of=FlashOffer)
class FlashOfferRepository:
    def find_offer(self, offer_id: str) -> FlashOffer | None:
        """Load an offer, or None when it does not exist.

        Storage errors propagate so the caller can retry.
        """
        try:
            return self.get(offer_id)
        except ObjectNotFoundError:
            return None

    def mark_push_sent(self, offer_id: str) -> bool:
        """Set ``push_sent`` on a stored offer. Returns False if it could not be set."""
        offer = self.find_offer(offer_id)
        if offer is None:
            logger.warning("Offer vanished before it could be marked sent", offer_id=offer_id)
            return False

        try:
            offer.mark_push_sent()
        except ValidationError:
            logger.warning("Offer was already marked sent", offer_id=offer_id)
            return False

        self.add(offer)
        return True
