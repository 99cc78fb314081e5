"""Firebase Cloud Messaging adapter for the push gateway port."""

import json

import firebase_admin
import structlog
from firebase_admin import credentials, exceptions, messaging

from flash_offers.channel.push_port import DeliveryResponse, GatewayInitError, PushGateway

logger = structlog.get_logger(__name__)

APP_NAME = "flash-offers"

REQUIRED_SERVICE_ACCOUNT_FIELDS = ("project_id", "private_key", "client_email")

# Most specific first; messaging errors subclass the generic ones
_ERROR_CODES = (
    (messaging.UnregisteredError, "messaging/registration-token-not-registered"),
    (messaging.SenderIdMismatchError, "messaging/invalid-registration-token"),
    (messaging.QuotaExceededError, "messaging/quota-exceeded"),
    (messaging.ThirdPartyAuthError, "messaging/third-party-auth-error"),
    (exceptions.InvalidArgumentError, "messaging/invalid-argument"),
    (exceptions.ResourceExhaustedError, "messaging/too-many-requests"),
    (exceptions.UnavailableError, "messaging/unavailable"),
    (exceptions.InternalError, "messaging/internal-error"),
)


def error_code_for(exc: Exception | None) -> str:
    """Translate a Firebase exception into a ``messaging/<reason>`` code."""
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return "messaging/unknown-error"


def parse_service_account(raw: str | None) -> dict:
    """Decode and sanity-check service-account JSON.

    Raises ``GatewayInitError`` without echoing the credential contents.
    """
    if not raw:
        raise GatewayInitError("Push gateway service account is not configured")

    try:
        info = json.loads(raw)
    except ValueError as exc:
        raise GatewayInitError("Push gateway service account is not valid JSON") from exc

    if not isinstance(info, dict):
        raise GatewayInitError("Push gateway service account must be a JSON object")

    missing = [name for name in REQUIRED_SERVICE_ACCOUNT_FIELDS if not info.get(name)]
    if missing:
        raise GatewayInitError(f"Push gateway service account is missing fields: {', '.join(missing)}")

    return info


def build_message(tokens: list[str], payload: dict) -> messaging.MulticastMessage:
    notification = payload.get("notification", {})
    android = payload.get("android", {})
    aps = payload.get("apns", {}).get("payload", {}).get("aps", {})

    return messaging.MulticastMessage(
        tokens=tokens,
        notification=messaging.Notification(
            title=notification.get("title"),
            body=notification.get("body"),
        ),
        data={key: str(value) for key, value in payload.get("data", {}).items()},
        android=messaging.AndroidConfig(
            priority=android.get("priority", "high"),
            notification=messaging.AndroidNotification(channel_id=android.get("channel_id")),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    content_available=bool(aps.get("content-available")),
                    sound=aps.get("sound", "default"),
                )
            )
        ),
    )


class FirebasePushAdapter(PushGateway):
    """Sends multicast messages through the Firebase Admin SDK."""

    def __init__(self, service_account_json: str | None):
        info = parse_service_account(service_account_json)

        try:
            self._app = firebase_admin.get_app(APP_NAME)
        except ValueError:
            try:
                self._app = firebase_admin.initialize_app(credentials.Certificate(info), name=APP_NAME)
            except ValueError as exc:
                raise GatewayInitError("Push gateway credentials were rejected") from exc

        logger.info("Push gateway initialized", project_id=info["project_id"])

    def send_multicast(self, tokens: list[str], payload: dict) -> list[DeliveryResponse]:
        if len(tokens) > self.max_batch_size:
            raise ValueError(f"Batch size {len(tokens)} exceeds gateway limit of {self.max_batch_size}")

        response = messaging.send_each_for_multicast(build_message(tokens, payload), app=self._app)
        logger.info(
            "Multicast sent",
            batch_size=len(tokens),
            success_count=response.success_count,
            failure_count=response.failure_count,
        )

        return [
            DeliveryResponse(success=True, message_id=item.message_id)
            if item.success
            else DeliveryResponse(success=False, error_code=error_code_for(item.exception))
            for item in response.responses
        ]
