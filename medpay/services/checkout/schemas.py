"""Request/response schemas for checkout endpoints."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class CreateOrderRequest(BaseModel):
    """Payload accepted by `POST /create-order`; omitted fields take configured defaults.

    The amount is passed through untouched. The provider is authoritative on
    whether it is a valid charge for the currency.
    """

    amount: str | None = None
    currency: str | None = None
    description: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class CreateOrderResponse(BaseModel):
    id: str
    status: str
    approve: str


class CaptureResult(BaseModel):
    capture_id: str | None = None
    status: str


class FinalizeOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    INDETERMINATE = "INDETERMINATE"


class FinalizeResult(BaseModel):
    """Terminal result of one capture attempt, as seen by this service."""

    outcome: FinalizeOutcome
    order_id: str
    capture: CaptureResult | None = None
    error: str | None = None
    detail: Any = None


class WebhookAck(BaseModel):
    verified: bool
    event_id: str | None = None
    event_type: str | None = None


class ErrorResponse(BaseModel):
    error: bool = True
    message: str
    error_type: str
    details: Any = Field(default=None)
