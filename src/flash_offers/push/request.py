"""Validated body of a push dispatch request.

Wire names are camelCase (``offerId``, ``dryRun``). Validation failures are
reported as ``InvalidRequest`` with the message the client sees.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from flash_offers.errors import InvalidRequest
from flash_offers.security import validate_offer_id

_MESSAGE_BY_FIELD = {
    "offerId": "Offer ID is required",
    "dryRun": "dryRun must be a boolean",
}


class PushRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    offer_id: str = Field(..., examples=["0f8fad5b-d9cb-469f-a165-70867728950e"])
    dry_run: StrictBool = False

    @field_validator("offer_id", mode="before")
    @classmethod
    def sanitize_offer_id(cls, value: Any) -> str:
        try:
            return validate_offer_id(value)
        except InvalidRequest as exc:
            raise ValueError(exc.message) from exc


def _invalid_request(exc: ValidationError) -> InvalidRequest:
    error = exc.errors()[0]
    if error["type"] == "json_invalid":
        return InvalidRequest("Invalid JSON in request body")
    if not error["loc"]:
        return InvalidRequest("Request body must be a JSON object")

    cause = (error.get("ctx") or {}).get("error")
    if isinstance(cause, ValueError):
        return InvalidRequest(str(cause))
    return InvalidRequest(_MESSAGE_BY_FIELD.get(error["loc"][0], "Invalid request"))


def parse_push_request(body: bytes | str | None) -> PushRequest:
    try:
        return PushRequest.model_validate_json(body or b"")
    except ValidationError as exc:
        raise _invalid_request(exc) from exc
