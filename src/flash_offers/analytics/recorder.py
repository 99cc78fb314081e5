"""Writes dispatch outcomes to the analytics store.

Recording is best effort: a failed write is logged and swallowed so it
never changes the response of a dispatch that has already happened.
"""

import json
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from flash_offers.analytics.record import AnalyticsEventType, AnalyticsRecord

logger = structlog.get_logger(__name__)


class AnalyticsRecorder:
    def record_sent(
        self,
        offer_id: str,
        venue_id: str,
        targeted_count: int,
        success_count: int,
        failure_count: int,
        errors=(),
    ) -> bool:
        """Record a completed dispatch. ``recipient_count`` is the delivered count."""
        metadata = {
            "targeted_count": targeted_count,
            "failed_count": failure_count,
            "venue_id": str(venue_id),
        }
        written = self._write(offer_id, AnalyticsEventType.PUSH_SENT, success_count, metadata)

        if errors:
            logger.info(
                "Undelivered notifications for offer",
                offer_id=str(offer_id),
                failures=[error.error for error in errors],
            )
        return written

    def record_failed(self, offer_id: str, venue_id: str, error_code: str, error_message: str) -> bool:
        metadata = {
            "error_code": error_code,
            "error_message": error_message,
            "venue_id": str(venue_id),
        }
        return self._write(offer_id, AnalyticsEventType.PUSH_FAILED, 0, metadata)

    def _write(self, offer_id: str, event_type: AnalyticsEventType, recipient_count: int, metadata: dict) -> bool:
        try:
            record = AnalyticsRecord(
                offer_id=str(offer_id),
                event_type=event_type.value,
                recipient_count=recipient_count,
                metadata_json=json.dumps(metadata),
                created_at=datetime.now(UTC),
            )
            current_domain.repository_for(AnalyticsRecord).add(record)
        except Exception as exc:
            logger.error(
                "Failed to record dispatch analytics",
                offer_id=str(offer_id),
                event_type=event_type.value,
                error=str(exc),
            )
            return False

        logger.info(
            "Recorded dispatch analytics",
            offer_id=str(offer_id),
            event_type=event_type.value,
            recipient_count=recipient_count,
        )
        return True
