"""Bearer-token authentication for the dispatch endpoint."""

import asyncio

import structlog

from flash_offers.channel.identity_port import IdentityProvider, Principal
from flash_offers.errors import Unauthorized

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


class Authenticator:
    def __init__(self, identity: IdentityProvider):
        self.identity = identity

    async def authenticate(self, authorization: str | None) -> Principal:
        """Resolve the caller from an ``Authorization`` header value.

        Raises ``Unauthorized`` for a missing or malformed header, and when
        the identity provider rejects the token or cannot be reached.
        """
        if not authorization:
            raise Unauthorized("Missing authorization token")
        if not authorization.startswith(BEARER_PREFIX):
            raise Unauthorized("Invalid authorization header format. Expected: Bearer <token>")

        access_token = authorization[len(BEARER_PREFIX) :].strip()
        if not access_token:
            raise Unauthorized("Invalid or expired authorization token")

        try:
            principal = await asyncio.to_thread(self.identity.verify, access_token)
        except Exception as exc:
            logger.error("Identity provider request failed", error=str(exc))
            raise Unauthorized("Invalid or expired authorization token") from exc

        if principal is None:
            raise Unauthorized("Invalid or expired authorization token")

        logger.info("Caller authenticated", user_id=principal.user_id)
        return principal
