"""Fake identity provider — a fixed table of accepted tokens for testing."""

from flash_offers.channel.identity_port import IdentityProvider, Principal


class FakeIdentityAdapter(IdentityProvider):
    def __init__(self, tokens: dict[str, str] | None = None):
        self.tokens = dict(tokens or {})
        self.verified: list[str] = []
        self.unavailable = False

    def accept(self, access_token: str, user_id: str):
        self.tokens[access_token] = user_id

    def verify(self, access_token: str) -> Principal | None:
        if self.unavailable:
            raise ConnectionError("Identity provider unavailable")

        self.verified.append(access_token)
        user_id = self.tokens.get(access_token)
        return Principal(user_id=user_id) if user_id else None
