"""AnalyticsRecord aggregate — outcome of one dispatch attempt for reporting."""

from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String, Text

from flash_offers.domain import flash_offers


class AnalyticsEventType(Enum):
    PUSH_SENT = "push_sent"
    PUSH_FAILED = "push_failed"


@flash_offers.aggregate
class AnalyticsRecord:
    offer_id: Identifier(required=True)
    event_type: String(choices=AnalyticsEventType, required=True)
    recipient_count: Integer(default=0, min_value=0)
    metadata_json: Text()  # JSON: counts, venue id, error code
    created_at: DateTime(required=True)
