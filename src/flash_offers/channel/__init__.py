"""Outbound adapters — push gateway and identity provider.

Adapters are chosen by settings and constructed once at application start;
the resulting instances are handed to the dispatch pipeline explicitly.
Fake adapters serve local development and tests.
"""

from flash_offers.channel.identity_port import IdentityProvider
from flash_offers.channel.push_port import GatewayInitError, PushGateway


def build_push_gateway(settings) -> PushGateway:
    """Construct the configured push gateway. Raises ``GatewayInitError``."""
    if settings.PUSH_GATEWAY == "fake":
        from flash_offers.channel.fake_push import FakePushAdapter

        return FakePushAdapter()
    if settings.PUSH_GATEWAY == "firebase":
        from flash_offers.channel.firebase_push import FirebasePushAdapter

        return FirebasePushAdapter(settings.FIREBASE_SERVICE_ACCOUNT)

    raise GatewayInitError(f"Unknown push gateway: {settings.PUSH_GATEWAY}")


def build_identity_provider(settings) -> IdentityProvider:
    if settings.IDENTITY_PROVIDER == "fake":
        from flash_offers.channel.fake_identity import FakeIdentityAdapter

        return FakeIdentityAdapter()
    if settings.IDENTITY_PROVIDER == "supabase":
        from flash_offers.channel.supabase_identity import SupabaseIdentityAdapter

        return SupabaseIdentityAdapter(
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY,
            timeout=settings.IDENTITY_TIMEOUT_SECONDS,
        )

    raise ValueError(f"Unknown identity provider: {settings.IDENTITY_PROVIDER}")
