"""FastAPI application factory.

Adapters are built once here and injected into the dispatch pipeline.
A push gateway that fails to initialise does not stop the process: the
endpoint answers ``GATEWAY_INIT_FAILED`` until it is redeployed with valid
credentials.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from flash_offers.api.routes import router
from flash_offers.api.schemas import HealthResponse
from flash_offers.channel import GatewayInitError, build_identity_provider, build_push_gateway
from flash_offers.domain import flash_offers
from flash_offers.monitoring import MonitoringService
from flash_offers.push.orchestrator import build_orchestrator
from flash_offers.settings import load_settings

logger = structlog.get_logger(__name__)

_UNSET = object()


def create_app(settings=None, gateway=_UNSET, identity=None, monitor: MonitoringService | None = None) -> FastAPI:
    """Build the app. Unspecified collaborators are constructed from settings."""
    settings = settings or load_settings()

    if gateway is _UNSET:
        try:
            gateway = build_push_gateway(settings)
        except GatewayInitError as exc:
            logger.error("Push gateway initialization failed", error=str(exc))
            gateway = None

    identity = identity or build_identity_provider(settings)
    monitor = monitor or MonitoringService()

    app = FastAPI(
        title="Flash Offer Push API",
        description="Push dispatch for venue flash offers",
    )
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.monitor = monitor
    app.state.orchestrator = build_orchestrator(settings, gateway, identity, monitor)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the Protean domain context for each request."""
        with flash_offers.domain_context():
            return await call_next(request)

    app.include_router(router)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="ok", push_gateway="ready" if gateway is not None else "unavailable")

    return app
