from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def flash_offers_bed():
    from flash_offers.domain import flash_offers

    bed = DomainFixture(flash_offers)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(flash_offers_bed):
    with flash_offers_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Adapters and wiring
# ---------------------------------------------------------------------------
CALLER_TOKEN = "valid-access-token"
AUTH_HEADER = f"Bearer {CALLER_TOKEN}"


@pytest.fixture
def fake_gateway():
    from flash_offers.channel.fake_push import FakePushAdapter

    return FakePushAdapter()


@pytest.fixture
def fake_identity():
    from flash_offers.channel.fake_identity import FakeIdentityAdapter

    return FakeIdentityAdapter({CALLER_TOKEN: "venue-owner-1"})


@pytest.fixture
def settings():
    from flash_offers.settings import Settings

    return Settings(PUSH_GATEWAY="fake", IDENTITY_PROVIDER="fake", DB_RETRY_DELAY_SECONDS=0)


@pytest.fixture
def monitor():
    from flash_offers.monitoring import MonitoringService

    return MonitoringService()


@pytest.fixture
def orchestrator(settings, fake_gateway, fake_identity, monitor):
    from flash_offers.push.orchestrator import build_orchestrator

    return build_orchestrator(settings, fake_gateway, fake_identity, monitor)


@pytest.fixture
def client(settings, fake_gateway, fake_identity, monitor):
    from flash_offers.api.app import create_app

    app = create_app(settings, gateway=fake_gateway, identity=fake_identity, monitor=monitor)
    return TestClient(app)


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------
@pytest.fixture
def make_venue():
    from flash_offers.venue.venue import Venue

    def _make(name="Coffee Shop", latitude=40.7128, longitude=-74.0060, tier="core"):
        venue = Venue(name=name, latitude=latitude, longitude=longitude, subscription_tier=tier)
        current_domain.repository_for(Venue).add(venue)
        return venue

    return _make


@pytest.fixture
def make_offer():
    from flash_offers.offer.offer import FlashOffer

    def _make(venue, **overrides):
        now = datetime.now(UTC)
        values = {
            "venue_id": str(venue.id),
            "title": "Happy Hour",
            "description": "Half-price cocktails until 7pm",
            "discount_percentage": 25,
            "radius_miles": 5.0,
            "target_favorites_only": False,
            "starts_at": now,
            "expires_at": now + timedelta(hours=2),
            "created_at": now,
        }
        values.update(overrides)
        offer = FlashOffer(**values)
        current_domain.repository_for(FlashOffer).add(offer)
        return offer

    return _make


@pytest.fixture
def make_device():
    from flash_offers.audience.device import DeviceRegistration

    def _make(user_id, token=None, platform="ios", is_active=True):
        registration = DeviceRegistration(
            user_id=user_id,
            token=token or f"{user_id}-device",
            platform=platform,
            is_active=is_active,
            created_at=datetime.now(UTC),
        )
        current_domain.repository_for(DeviceRegistration).add(registration)
        return registration

    return _make


@pytest.fixture
def make_check_in():
    from flash_offers.audience.check_in import CheckIn

    def _make(user_id, venue, days_ago=1):
        check_in = CheckIn(
            user_id=user_id,
            venue_id=str(venue.id),
            created_at=datetime.now(UTC) - timedelta(days=days_ago),
        )
        current_domain.repository_for(CheckIn).add(check_in)
        return check_in

    return _make


@pytest.fixture
def make_preference():
    from flash_offers.preference.preference import NotificationPreference

    def _make(user_id, **overrides):
        preference = NotificationPreference(user_id=user_id, **overrides)
        current_domain.repository_for(NotificationPreference).add(preference)
        return preference

    return _make


@pytest.fixture
def make_audience(make_device, make_check_in):
    """Users who checked in at ``venue`` yesterday, one device each. Returns their device tokens."""

    def _make(venue, count, prefix="user"):
        tokens = []
        for index in range(count):
            user_id = f"{prefix}-{index}"
            registration = make_device(user_id, token=f"{prefix}-token-{index}")
            make_check_in(user_id, venue)
            tokens.append(registration.token)
        return tokens

    return _make


@pytest.fixture
def auth_header():
    return AUTH_HEADER
