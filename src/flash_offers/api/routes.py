"""FastAPI routes for flash offer push dispatch.

Thin adapter: hands the raw request to the orchestrator and renders its
outcome or error. Every body passes the credential-leak scanner first.
"""

import structlog
from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse

from flash_offers.api.schemas import DeliveryError, ErrorResponse, PushRequest, PushResponse
from flash_offers.errors import DispatchError
from flash_offers.push.orchestrator import PushOutcome
from flash_offers.security import validate_response_body

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/flash-offers", tags=["flash-offers"])


def safe_json_response(status_code: int, body: dict, headers: dict[str, str] | None = None) -> JSONResponse:
    """JSON response, substituting a scrubbed body if credentials are detected."""
    validation = validate_response_body(body)
    if not validation.safe:
        logger.error("Response body contained credentials", violations=validation.violations)
        body = validation.sanitized
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def render_outcome(outcome: PushOutcome) -> JSONResponse:
    response = PushResponse(
        targeted_user_count=outcome.targeted_user_count,
        sent_count=outcome.sent_count,
        failed_count=outcome.failed_count,
        errors=[DeliveryError(token=error.token, error=error.error) for error in outcome.errors],
        dry_run=True if outcome.dry_run else None,
        message=outcome.message,
    )
    return safe_json_response(200, response.model_dump(by_alias=True, exclude_none=True))


def render_error(error: DispatchError) -> JSONResponse:
    response = ErrorResponse(error=error.message, code=error.code.value, details=error.details)
    return safe_json_response(
        error.status_code,
        response.model_dump(by_alias=True, exclude_none=True),
        headers=error.headers() or None,
    )


@router.post(
    "/push",
    response_model=PushResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    openapi_extra={"requestBody": {"content": {"application/json": {"schema": PushRequest.model_json_schema()}}}},
)
async def send_flash_offer_push(request: Request, authorization: str | None = Header(default=None)):
    """Push a flash offer to its eligible audience."""
    orchestrator = request.app.state.orchestrator
    body = await request.body()

    try:
        outcome = await orchestrator.execute(authorization, body)
    except DispatchError as exc:
        return render_error(exc)

    return render_outcome(outcome)
