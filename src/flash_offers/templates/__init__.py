"""Push notification templates.

Each template renders a gateway-neutral payload dict; the gateway adapter
maps it onto its own message types.
"""

from flash_offers.templates.flash_offer import FlashOfferTemplate

__all__ = ["FlashOfferTemplate"]
