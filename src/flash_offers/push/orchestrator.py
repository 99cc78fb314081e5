"""Push dispatch orchestration — one request from credential to response.

A dispatch run moves through a fixed sequence of stages::

    RECEIVED → AUTHENTICATED → OFFER_LOADED → VENUE_LOADED → VENUE_LIMIT_OK
      → CANDIDATES_RESOLVED → FILTERED → DISPATCHED → RECORDED → RESPONDED

An already-dispatched offer short-circuits from OFFER_LOADED straight to
RESPONDED, and a dry run skips DISPATCHED and RECORDED. Any stage may end
the run with a ``DispatchError``.

Storage reads on the critical path are retried once; side effects after
delivery (counters, the offer's sent flag, analytics) are best effort.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from flash_offers.analytics.recorder import AnalyticsRecorder
from flash_offers.audience.targeting import TargetingResolver
from flash_offers.dispatch.batching import BatchDispatcher, DispatchResult, TokenError
from flash_offers.dispatch.invalidation import TokenInvalidator
from flash_offers.errors import (
    DatabaseError,
    DispatchError,
    ErrorCode,
    GatewayInitFailed,
    GatewayQuotaExceeded,
    InternalError,
    InvalidRequest,
    OfferNotFound,
    RateLimitExceeded,
    VenueNotFound,
)
from flash_offers.monitoring import MetricType, MonitoringService
from flash_offers.offer.offer import FlashOffer
from flash_offers.preference.filtering import PreferenceFilter
from flash_offers.push.authentication import Authenticator
from flash_offers.push.request import parse_push_request
from flash_offers.push.retry import retry_once
from flash_offers.rate_limit.limiter import RateLimiter
from flash_offers.templates import FlashOfferTemplate
from flash_offers.utils.logging import dispatch_log_context
from flash_offers.venue.venue import Venue

logger = structlog.get_logger(__name__)

ALREADY_SENT_MESSAGE = "Push notification already sent for this offer"


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------
class DispatchStage(Enum):
    RECEIVED = "Received"
    AUTHENTICATED = "Authenticated"
    OFFER_LOADED = "OfferLoaded"
    VENUE_LOADED = "VenueLoaded"
    VENUE_LIMIT_OK = "VenueLimitOk"
    CANDIDATES_RESOLVED = "CandidatesResolved"
    FILTERED = "Filtered"
    DISPATCHED = "Dispatched"
    RECORDED = "Recorded"
    RESPONDED = "Responded"


_VALID_TRANSITIONS = {
    DispatchStage.RECEIVED: {DispatchStage.AUTHENTICATED},
    DispatchStage.AUTHENTICATED: {DispatchStage.OFFER_LOADED},
    DispatchStage.OFFER_LOADED: {DispatchStage.VENUE_LOADED, DispatchStage.RESPONDED},  # Already sent
    DispatchStage.VENUE_LOADED: {DispatchStage.VENUE_LIMIT_OK},
    DispatchStage.VENUE_LIMIT_OK: {DispatchStage.CANDIDATES_RESOLVED},
    DispatchStage.CANDIDATES_RESOLVED: {DispatchStage.FILTERED},
    DispatchStage.FILTERED: {DispatchStage.DISPATCHED, DispatchStage.RESPONDED},  # Dry run
    DispatchStage.DISPATCHED: {DispatchStage.RECORDED},
    DispatchStage.RECORDED: {DispatchStage.RESPONDED},
    DispatchStage.RESPONDED: set(),  # Terminal
}


@dataclass
class DispatchRun:
    """Progress of a single invocation, used for logging and timing."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    started: float = field(default_factory=time.monotonic)
    stage: DispatchStage = DispatchStage.RECEIVED
    offer_id: str | None = None
    venue_id: str | None = None
    dry_run: bool = False

    def advance(self, stage: DispatchStage) -> None:
        if stage not in _VALID_TRANSITIONS[self.stage]:
            raise RuntimeError(f"Invalid dispatch stage transition: {self.stage.value} -> {stage.value}")
        self.stage = stage
        logger.debug("Dispatch stage reached", stage=stage.value, offer_id=self.offer_id)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


@dataclass
class PushOutcome:
    targeted_user_count: int
    sent_count: int
    failed_count: int
    errors: list[TokenError] = field(default_factory=list)
    dry_run: bool = False
    message: str | None = None


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------
class PushDispatchOrchestrator:
    """Runs the dispatch pipeline with collaborators wired at construction.

    ``dispatcher`` is None when the push gateway failed to initialise; the
    run then ends with ``GatewayInitFailed`` once the caller is authenticated.
    """

    def __init__(
        self,
        authenticator: Authenticator,
        dispatcher: BatchDispatcher | None,
        limiter: RateLimiter,
        resolver: TargetingResolver,
        preference_filter: PreferenceFilter,
        recorder: AnalyticsRecorder,
        monitor: MonitoringService,
        timeout_seconds: float = 30.0,
        slow_warning_seconds: float = 25.0,
        retry_delay_seconds: float = 0.5,
        default_radius_miles: float = 1.0,
    ):
        self.authenticator = authenticator
        self.dispatcher = dispatcher
        self.limiter = limiter
        self.resolver = resolver
        self.preference_filter = preference_filter
        self.recorder = recorder
        self.monitor = monitor
        self.timeout_seconds = timeout_seconds
        self.slow_warning_seconds = slow_warning_seconds
        self.retry_delay_seconds = retry_delay_seconds
        self.default_radius_miles = default_radius_miles

    async def execute(self, authorization: str | None, body: bytes | str | None) -> PushOutcome:
        """Run one dispatch. Every failure surfaces as a ``DispatchError``."""
        run = DispatchRun()
        try:
            with dispatch_log_context(dispatch_run=run.run_id):
                outcome = await asyncio.wait_for(self._run(run, authorization, body), timeout=self.timeout_seconds)
        except DispatchError as exc:
            self._record_outcome(run, error=exc)
            raise
        except TimeoutError as exc:
            logger.error(
                "Dispatch timed out",
                offer_id=run.offer_id,
                stage=run.stage.value,
                elapsed_ms=run.elapsed_ms,
            )
            error = InternalError(
                f"Request timeout. The operation took longer than {self.timeout_seconds:g} seconds.",
                details={"executionTime": run.elapsed_ms},
            )
            self._record_outcome(run, error=error)
            raise error from exc
        except Exception as exc:
            logger.exception("Unexpected dispatch failure", offer_id=run.offer_id, stage=run.stage.value)
            error = InternalError()
            self._record_outcome(run, error=error)
            raise error from exc

        self._record_outcome(run)
        return outcome

    async def _run(self, run: DispatchRun, authorization: str | None, body) -> PushOutcome:
        await self.authenticator.authenticate(authorization)
        if self.dispatcher is None:
            raise GatewayInitFailed()
        run.advance(DispatchStage.AUTHENTICATED)

        request = parse_push_request(body)
        offer_id, run.dry_run = request.offer_id, request.dry_run
        run.offer_id = offer_id

        offer = await self._read(
            lambda: current_domain.repository_for(FlashOffer).find_offer(offer_id),
            "find_offer",
            "Database error while fetching offer details",
        )
        if offer is None:
            raise OfferNotFound("Flash offer not found")
        run.venue_id = str(offer.venue_id)
        run.advance(DispatchStage.OFFER_LOADED)

        if offer.push_sent and not run.dry_run:
            logger.info("Push already sent for offer", offer_id=offer_id)
            run.advance(DispatchStage.RESPONDED)
            return PushOutcome(0, 0, 0, message=ALREADY_SENT_MESSAGE)

        venue = await self._read(
            lambda: current_domain.repository_for(Venue).find_venue(offer.venue_id),
            "find_venue",
            "Database error while fetching venue details",
        )
        if venue is None:
            raise VenueNotFound("Venue not found")
        run.advance(DispatchStage.VENUE_LOADED)

        await self._enforce_venue_limit(run, venue)
        run.advance(DispatchStage.VENUE_LIMIT_OK)

        if not venue.has_location:
            raise InvalidRequest("Venue location not available")

        radius = offer.radius_miles if offer.radius_miles is not None else self.default_radius_miles
        candidates = await self._read(
            lambda: self.resolver.resolve(venue, radius, bool(offer.target_favorites_only)),
            "resolve_candidates",
            "Database error while fetching targeted users",
        )
        run.advance(DispatchStage.CANDIDATES_RESOLVED)

        filtered = self.preference_filter.filter(candidates, venue.latitude, venue.longitude)
        allowed_users = await self._read(
            lambda: self.limiter.filter_users_by_limit(c.user_id for c in filtered),
            "filter_users_by_limit",
            "Database error while checking user rate limits",
        )
        allowed = set(allowed_users)
        eligible = [candidate for candidate in filtered if candidate.user_id in allowed]
        run.advance(DispatchStage.FILTERED)

        logger.info(
            "Audience resolved",
            offer_id=offer_id,
            candidates=len(candidates),
            after_preferences=len(filtered),
            eligible=len(eligible),
            dry_run=run.dry_run,
        )

        addresses = [candidate.device_token for candidate in eligible]

        if run.dry_run:
            run.advance(DispatchStage.RESPONDED)
            return PushOutcome(len(addresses), len(addresses), 0, dry_run=True)

        await asyncio.to_thread(self.limiter.increment_venue, venue.id)
        await asyncio.to_thread(self.limiter.increment_users, allowed_users)

        payload = FlashOfferTemplate.render(offer, venue.name)
        result = await self._deliver(offer, addresses, payload)
        run.advance(DispatchStage.DISPATCHED)

        try:
            await asyncio.to_thread(current_domain.repository_for(FlashOffer).mark_push_sent, offer_id)
        except Exception as exc:
            logger.error("Failed to mark offer as sent", offer_id=offer_id, error=str(exc))

        await asyncio.to_thread(
            self.recorder.record_sent,
            offer_id,
            offer.venue_id,
            targeted_count=len(addresses),
            success_count=result.success_count,
            failure_count=result.failure_count,
            errors=result.errors,
        )
        run.advance(DispatchStage.RECORDED)

        run.advance(DispatchStage.RESPONDED)
        return PushOutcome(len(addresses), result.success_count, result.failure_count, errors=result.errors)

    # -------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------
    async def _read(self, operation, operation_name: str, failure_message: str):
        try:
            return await retry_once(operation, operation_name, delay=self.retry_delay_seconds)
        except Exception as exc:
            raise DatabaseError(failure_message) from exc

    async def _enforce_venue_limit(self, run: DispatchRun, venue: Venue) -> None:
        tier = venue.tier
        result = await self._read(
            lambda: self.limiter.check_venue_limit(venue.id, tier),
            "check_venue_limit",
            "Database error while checking rate limits",
        )
        if result.allowed:
            return

        logger.warning(
            "Venue rate limit exceeded",
            offer_id=run.offer_id,
            venue_id=str(venue.id),
            current=result.current_count,
            limit=result.limit,
            tier=tier.value,
        )
        self.monitor.record_metric(
            MetricType.RATE_LIMIT_VIOLATIONS, 1, offer_id=run.offer_id, venue_id=str(venue.id), tier=tier.value
        )
        raise RateLimitExceeded(
            f"Rate limit exceeded. You have sent {result.current_count} of {result.limit} "
            "allowed offers in the last 24 hours.",
            details={
                "currentCount": result.current_count,
                "limit": result.limit,
                "resetsAt": result.resets_at.isoformat() if result.resets_at else None,
            },
            retry_after=result.retry_after_seconds(),
        )

    async def _deliver(self, offer: FlashOffer, addresses: list[str], payload: dict) -> DispatchResult:
        try:
            result = await self.dispatcher.dispatch(addresses, payload)
        except Exception as exc:
            message = str(exc)
            logger.error("Push dispatch failed", offer_id=str(offer.id), error=message)
            if "quota" in message.lower() or "too-many-requests" in message.lower():
                await self._abort_quota(offer, message)
            raise InternalError("Failed to send push notifications") from exc

        attempted = result.success_count + result.failure_count
        if attempted:
            self.monitor.record_metric(
                MetricType.GATEWAY_FAILURE_RATE,
                result.failure_count / attempted,
                offer_id=str(offer.id),
                success_count=result.success_count,
                failure_count=result.failure_count,
            )

        if result.is_quota_dominated:
            await self._abort_quota(
                offer,
                "Quota exceeded for most of a batch",
                details={"successCount": result.success_count, "failureCount": result.failure_count},
            )
        return result

    async def _abort_quota(self, offer: FlashOffer, message: str, details: dict | None = None):
        logger.error("Push gateway quota exceeded", offer_id=str(offer.id), details=details)
        await asyncio.to_thread(
            self.recorder.record_failed, offer.id, offer.venue_id, ErrorCode.GATEWAY_QUOTA_EXCEEDED.value, message
        )
        raise GatewayQuotaExceeded(details=details)

    def _record_outcome(self, run: DispatchRun, error: DispatchError | None = None) -> None:
        elapsed = run.elapsed_ms
        self.monitor.record_metric(
            MetricType.ERROR_RATE,
            0 if error is None or error.status_code < 500 else 1,
            offer_id=run.offer_id,
            code=error.code.value if error else None,
        )
        if error is None:
            self.monitor.record_metric(MetricType.EXECUTION_TIME, elapsed, offer_id=run.offer_id)

        if elapsed > self.slow_warning_seconds * 1000:
            logger.warning("Dispatch exceeded slow-request threshold", offer_id=run.offer_id, elapsed_ms=elapsed)
        logger.info(
            "Dispatch finished",
            offer_id=run.offer_id,
            venue_id=run.venue_id,
            stage=run.stage.value,
            code=error.code.value if error else None,
            elapsed_ms=elapsed,
        )


def build_orchestrator(settings, gateway, identity, monitor: MonitoringService) -> PushDispatchOrchestrator:
    """Wire the pipeline from settings and already-constructed adapters.

    Pass ``gateway=None`` when the push gateway failed to initialise.
    """
    dispatcher = None
    if gateway is not None:
        dispatcher = BatchDispatcher(
            gateway,
            TokenInvalidator(),
            batch_size=settings.GATEWAY_BATCH_SIZE,
            max_concurrency=settings.GATEWAY_MAX_CONCURRENCY,
        )

    return PushDispatchOrchestrator(
        authenticator=Authenticator(identity),
        dispatcher=dispatcher,
        limiter=RateLimiter(user_limit=settings.USER_DAILY_LIMIT),
        resolver=TargetingResolver(
            broadcast_radius_miles=settings.BROADCAST_RADIUS_MILES,
            lookback_days=settings.CHECKIN_LOOKBACK_DAYS,
            checkin_scan_limit=settings.CHECKIN_SCAN_LIMIT,
        ),
        preference_filter=PreferenceFilter(),
        recorder=AnalyticsRecorder(),
        monitor=monitor,
        timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
        slow_warning_seconds=settings.SLOW_REQUEST_WARNING_SECONDS,
        retry_delay_seconds=settings.DB_RETRY_DELAY_SECONDS,
        default_radius_miles=settings.DEFAULT_RADIUS_MILES,
    )
