"""Pydantic request/response models for the flash offer push API.

API schemas are separate from domain objects. Wire names are camelCase.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from flash_offers.push.request import PushRequest

__all__ = ["DeliveryError", "ErrorResponse", "HealthResponse", "PushRequest", "PushResponse"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class DeliveryError(_CamelModel):
    token: str
    error: str


class PushResponse(_CamelModel):
    success: bool = True
    targeted_user_count: int
    sent_count: int
    failed_count: int
    errors: list[DeliveryError] = Field(default_factory=list)
    dry_run: bool | None = None
    message: str | None = None


class ErrorResponse(_CamelModel):
    success: bool = False
    error: str
    code: str
    details: dict[str, Any] | None = None


class HealthResponse(_CamelModel):
    status: str
    push_gateway: str
