"""Supabase Auth adapter for the identity provider port."""

import requests
import structlog

from flash_offers.channel.identity_port import IdentityProvider, Principal

logger = structlog.get_logger(__name__)


class SupabaseIdentityAdapter(IdentityProvider):
    """Resolves access tokens against the Supabase Auth ``/user`` endpoint."""

    def __init__(self, base_url: str, anon_key: str, timeout: float = 5.0, session: requests.Session | None = None):
        self.user_url = f"{base_url.rstrip('/')}/auth/v1/user"
        self.anon_key = anon_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def verify(self, access_token: str) -> Principal | None:
        response = self.session.get(
            self.user_url,
            headers={
                "apikey": self.anon_key,
                "Authorization": f"Bearer {access_token}",
            },
            timeout=self.timeout,
        )

        if response.status_code in (401, 403):
            return None
        response.raise_for_status()

        user = response.json()
        if not user or not user.get("id"):
            return None
        return Principal(user_id=str(user["id"]), email=user.get("email"))
