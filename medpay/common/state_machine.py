"""Order status model as observed from the provider."""

from enum import Enum


class OrderStatus(str, Enum):
    CREATED = "CREATED"
    APPROVED = "APPROVED"
    CAPTURED = "CAPTURED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


# Provider vocabulary that does not match ours one-to-one.
PROVIDER_STATUS_MAP: dict[str, OrderStatus] = {
    "SAVED": OrderStatus.CREATED,
    "PAYER_ACTION_REQUIRED": OrderStatus.CREATED,
    "COMPLETED": OrderStatus.CAPTURED,
    "VOIDED": OrderStatus.CANCELLED,
}

ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.CREATED: {OrderStatus.APPROVED, OrderStatus.CANCELLED, OrderStatus.FAILED},
    OrderStatus.APPROVED: {OrderStatus.CAPTURED, OrderStatus.FAILED},
    OrderStatus.CAPTURED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.FAILED: set(),
}


def from_provider(status: str) -> OrderStatus:
    """Translate a provider order status; unknown values raise ValueError."""

    normalized = (status or "").upper()
    if normalized in PROVIDER_STATUS_MAP:
        return PROVIDER_STATUS_MAP[normalized]
    return OrderStatus(normalized)


def validate_transition(current: OrderStatus | str, new: OrderStatus | str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    current_status = OrderStatus(current)
    new_status = OrderStatus(new)
    if new_status not in ALLOWED_TRANSITIONS.get(current_status, set()):
        raise ValueError(f"Invalid transition: {current_status.value} -> {new_status.value}")
