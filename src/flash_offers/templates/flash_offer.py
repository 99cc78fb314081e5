"""Flash offer push template — the gateway-neutral notification payload."""

ANDROID_CHANNEL_ID = "flash_offers"
NOTIFICATION_CATEGORY = "flash_offer"


class FlashOfferTemplate:
    notification_category = NOTIFICATION_CATEGORY

    @staticmethod
    def render(offer, venue_name: str) -> dict:
        """Build the payload for ``offer`` at the venue called ``venue_name``.

        Always high priority; flash offers are time-sensitive and would
        otherwise risk being deferred by the platform.
        """
        discount = offer.discount_percentage
        description = (offer.description or "").strip()

        return {
            "notification": {
                "title": f"🔥 {discount}% off at {venue_name}",
                "body": description or f"Get {discount}% off for a limited time. Don't miss out!",
            },
            "data": {
                "offer_id": str(offer.id),
                "venue_id": str(offer.venue_id),
                "type": NOTIFICATION_CATEGORY,
            },
            "android": {
                "priority": "high",
                "channel_id": ANDROID_CHANNEL_ID,
            },
            "apns": {
                "payload": {
                    "aps": {
                        "content-available": 1,
                        "sound": "default",
                    },
                },
            },
        }
