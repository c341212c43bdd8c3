"""Error taxonomy for provider orchestration.

Every provider exchange ends either in a parsed response or in one of these
exceptions. Endpoints catch them at their boundary and translate them into a
JSON error body or an HTML outcome page.
"""

from typing import Any


class CheckoutError(Exception):
    """Base class carrying a safe message plus raw diagnostic detail."""

    def __init__(self, message: str, detail: Any = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code


class AuthenticationError(CheckoutError):
    """Client-credentials exchange with the provider failed."""


class IntegrationError(CheckoutError):
    """Provider answered, but rejected the call or returned an unexpected shape."""


class ValidationError(CheckoutError):
    """A required request field is missing; no provider call was attempted."""


class UpstreamFailure(CheckoutError):
    """Network error or 5xx from the provider."""


class IndeterminateOutcome(CheckoutError):
    """A side-effecting call was sent but its result is unknown.

    Funds may have moved. Callers must never treat this as a plain failure.
    """


class WebhookVerificationError(CheckoutError):
    """Webhook delivery could not be verified as coming from the provider."""


class DocumentRenderError(Exception):
    """Prescription document could not be produced."""
