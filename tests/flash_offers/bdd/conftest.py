"""Shared BDD fixtures and step definitions for flash offer dispatch."""

import asyncio
import json
from datetime import UTC, datetime, timedelta

import pytest
from flash_offers.audience.device import DeviceRegistration
from flash_offers.errors import DispatchError
from flash_offers.offer.offer import FlashOffer
from flash_offers.rate_limit.record import RateLimitRecord
from protean import current_domain
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def result():
    """Container for the dispatch outcome or the error it raised."""
    return {"outcome": None, "error": None}


def _dispatch(orchestrator, authorization, offer, result, dry_run=False):
    body = json.dumps({"offerId": str(offer.id), "dryRun": dry_run}).encode()
    try:
        result["outcome"] = asyncio.run(orchestrator.execute(authorization, body))
        result["error"] = None
    except DispatchError as exc:
        result["outcome"] = None
        result["error"] = exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a "{tier}" venue with a location'), target_fixture="venue")
def venue_with_location(make_venue, tier):
    return make_venue(tier=tier)


@given("an unsent flash offer at the venue", target_fixture="offer")
def unsent_offer(make_offer, venue):
    return make_offer(venue)


@given(parsers.cfparse("{count:d} nearby users with registered devices"), target_fixture="tokens")
def nearby_users(make_audience, venue, count):
    return make_audience(venue, count)


@given(parsers.cfparse("the venue has already sent {count:d} offers today"))
def venue_sends_today(venue, count):
    now = datetime.now(UTC)
    current_domain.repository_for(RateLimitRecord).append(
        [RateLimitRecord.venue_send(str(venue.id), now - timedelta(hours=index + 1)) for index in range(count)]
    )


@given(parsers.cfparse("{count:d} of the devices are no longer registered"))
def unregistered_devices(fake_gateway, tokens, count):
    fake_gateway.configure(
        token_errors={token: "messaging/registration-token-not-registered" for token in tokens[:count]}
    )


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the venue owner pushes the offer")
def owner_pushes(orchestrator, auth_header, offer, result):
    _dispatch(orchestrator, auth_header, offer, result)


@when("the venue owner previews the offer")
def owner_previews(orchestrator, auth_header, offer, result):
    _dispatch(orchestrator, auth_header, offer, result, dry_run=True)


@when("an unauthenticated caller pushes the offer")
def anonymous_pushes(orchestrator, offer, result):
    _dispatch(orchestrator, None, offer, result)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("{count:d} notifications are delivered"))
def notifications_delivered(result, count):
    assert result["error"] is None
    assert result["outcome"].sent_count == count


@then(parsers.cfparse("{count:d} deliveries fail"))
def deliveries_fail(result, count):
    assert result["outcome"].failed_count == count


@then(parsers.cfparse("{count:d} users are targeted"))
def users_targeted(result, count):
    assert result["outcome"].targeted_user_count == count


@then(parsers.cfparse('the request is rejected with "{code}"'))
def request_rejected(result, code):
    assert result["error"] is not None
    assert result["error"].code.value == code


@then("no notifications are sent")
def nothing_sent(fake_gateway):
    assert fake_gateway.sent_batches == []


@then("the offer is marked as sent")
def offer_marked_sent(offer):
    assert current_domain.repository_for(FlashOffer).get(offer.id).push_sent is True


@then("the offer is not marked as sent")
def offer_not_marked_sent(offer):
    assert current_domain.repository_for(FlashOffer).get(offer.id).push_sent is False


@then(parsers.cfparse("{count:d} device registrations are deactivated"))
def registrations_deactivated(count):
    registrations = current_domain.repository_for(DeviceRegistration)._dao.query.all().items
    assert len([r for r in registrations if not r.is_active]) == count
