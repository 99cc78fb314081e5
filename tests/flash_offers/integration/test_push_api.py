"""Integration tests for the flash offer push endpoint."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from flash_offers.rate_limit.record import RateLimitRecord
from protean import current_domain

PUSH_URL = "/flash-offers/push"


@pytest.fixture
def venue(make_venue):
    return make_venue(tier="core")


@pytest.fixture
def offer(venue, make_offer):
    return make_offer(venue)


def _post(client, auth_header, body):
    headers = {"Authorization": auth_header} if auth_header else {}
    return client.post(PUSH_URL, json=body, headers=headers)


# ---------------------------------------------------------------
# Success responses
# ---------------------------------------------------------------
class TestPushSuccess:
    def test_sends_to_nearby_users(self, client, auth_header, fake_gateway, venue, offer, make_audience):
        tokens = make_audience(venue, 5)
        fake_gateway.configure(token_errors={tokens[2]: "messaging/registration-token-not-registered"})

        resp = _post(client, auth_header, {"offerId": str(offer.id)})

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["targetedUserCount"] == 5
        assert data["sentCount"] == 4
        assert data["failedCount"] == 1
        assert data["errors"] == [
            {"token": tokens[2], "error": "messaging/registration-token-not-registered (invalid_token)"}
        ]
        assert "dryRun" not in data
        assert "message" not in data

    def test_dry_run(self, client, auth_header, fake_gateway, venue, offer, make_audience):
        make_audience(venue, 10)

        resp = _post(client, auth_header, {"offerId": str(offer.id), "dryRun": True})

        assert resp.status_code == 200
        data = resp.json()
        assert data["dryRun"] is True
        assert data["targetedUserCount"] == 10
        assert data["sentCount"] == 10
        assert data["failedCount"] == 0
        assert data["errors"] == []
        assert fake_gateway.sent_batches == []

    def test_already_sent(self, client, auth_header, venue, offer, make_audience):
        make_audience(venue, 2)
        assert _post(client, auth_header, {"offerId": str(offer.id)}).status_code == 200

        resp = _post(client, auth_header, {"offerId": str(offer.id)})

        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Push notification already sent for this offer"
        assert data["targetedUserCount"] == 0
        assert data["sentCount"] == 0


# ---------------------------------------------------------------
# Error responses
# ---------------------------------------------------------------
class TestPushErrors:
    def test_missing_authorization(self, client, offer):
        resp = _post(client, None, {"offerId": str(offer.id)})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Missing authorization token", "code": "UNAUTHORIZED"}

    def test_invalid_token(self, client, offer):
        resp = _post(client, "Bearer not-a-real-token", {"offerId": str(offer.id)})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid or expired authorization token"

    def test_invalid_offer_id(self, client, auth_header):
        resp = _post(client, auth_header, {"offerId": "not-a-uuid"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_REQUEST"

    def test_non_json_body(self, client, auth_header):
        resp = client.post(
            PUSH_URL,
            content=b"offerId=abc",
            headers={"Authorization": auth_header, "Content-Type": "application/x-www-form-urlencoded"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid JSON in request body"

    def test_offer_not_found(self, client, auth_header):
        resp = _post(client, auth_header, {"offerId": str(uuid.uuid4())})
        assert resp.status_code == 404
        assert resp.json()["code"] == "OFFER_NOT_FOUND"

    def test_rate_limited(self, client, auth_header, venue, offer):
        now = datetime.now(UTC)
        current_domain.repository_for(RateLimitRecord).append(
            [RateLimitRecord.venue_send(str(venue.id), now - timedelta(hours=h)) for h in range(1, 6)]
        )

        resp = _post(client, auth_header, {"offerId": str(offer.id)})

        assert resp.status_code == 429
        assert int(resp.headers["Retry-After"]) > 0
        data = resp.json()
        assert data["code"] == "RATE_LIMIT_EXCEEDED"
        assert data["details"]["currentCount"] == 5
        assert data["details"]["limit"] == 5
        assert "resetsAt" in data["details"]

    def test_gateway_quota(self, client, auth_header, fake_gateway, venue, offer, make_audience):
        tokens = make_audience(venue, 2)
        fake_gateway.configure(token_errors={token: "messaging/quota-exceeded" for token in tokens})

        resp = _post(client, auth_header, {"offerId": str(offer.id)})

        assert resp.status_code == 429
        assert resp.json()["code"] == "GATEWAY_QUOTA_EXCEEDED"
        assert resp.headers["Retry-After"] == "60"


class TestResponseScrubbing:
    def test_credentials_never_leave_the_service(self, client, auth_header, venue, offer, make_audience):
        make_audience(venue, 1)
        resp = _post(client, auth_header, {"offerId": str(offer.id)})
        body = resp.text
        assert "Bearer" not in body
        assert "valid-access-token" not in body
