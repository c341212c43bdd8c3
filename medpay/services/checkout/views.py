"""HTML outcome pages returned to the payer's browser after the approval flow.

Each page meta-refreshes to a deep link so the client app can resume. Pages
only ever contain fixed copy; upstream error payloads are logged, not shown.
"""

from dataclasses import dataclass
from html import escape

from medpay.services.checkout.schemas import FinalizeOutcome, FinalizeResult

_PAGE = """<html>
  <head>
    <title>{title}</title>
    <meta http-equiv="refresh" content="{delay};url={deep_link}" />
    <style>
      body {{ font-family: Arial, sans-serif; text-align: center; padding-top: 50px; }}
      .success {{ color: green; }}
      .error {{ color: red; }}
      .pending {{ color: darkorange; }}
    </style>
  </head>
  <body>
    <h1{css}>{heading}</h1>
    <p>{message}</p>
    <p>Redirecting back to the app...</p>
  </body>
</html>
"""


@dataclass(frozen=True)
class OutcomePage:
    title: str
    heading: str
    message: str
    deep_link: str
    delay_seconds: int
    status_code: int = 200
    css_class: str | None = None

    def render(self) -> str:
        css = f' class="{self.css_class}"' if self.css_class else ""
        return _PAGE.format(
            title=escape(self.title),
            delay=self.delay_seconds,
            deep_link=escape(self.deep_link, quote=True),
            css=css,
            heading=escape(self.heading),
            message=escape(self.message),
        )


def success_page(deep_link_base: str) -> OutcomePage:
    return OutcomePage(
        title="Payment Successful",
        heading="Payment Successful!",
        message="Your appointment has been booked successfully.",
        deep_link=f"{deep_link_base}payment-success",
        delay_seconds=3,
        css_class="success",
    )


def error_page(deep_link_base: str) -> OutcomePage:
    return OutcomePage(
        title="Payment Error",
        heading="Payment Processing Error",
        message="There was an error processing your payment.",
        deep_link=f"{deep_link_base}payment-error",
        delay_seconds=5,
        status_code=500,
        css_class="error",
    )


def pending_page(deep_link_base: str) -> OutcomePage:
    # Capture may have gone through; never tell the payer it failed or succeeded.
    return OutcomePage(
        title="Payment Pending Confirmation",
        heading="Payment Pending Confirmation",
        message="We could not confirm your payment yet. Please do not pay again; "
        "your appointment status will update once the payment is confirmed.",
        deep_link=f"{deep_link_base}payment-pending",
        delay_seconds=3,
        status_code=504,
        css_class="pending",
    )


def cancelled_page(deep_link_base: str) -> OutcomePage:
    return OutcomePage(
        title="Payment Cancelled",
        heading="Payment Cancelled",
        message="You've cancelled the payment process.",
        deep_link=f"{deep_link_base}payment-cancelled",
        delay_seconds=3,
    )


def page_for_result(result: FinalizeResult, deep_link_base: str) -> OutcomePage:
    if result.outcome is FinalizeOutcome.SUCCESS:
        return success_page(deep_link_base)
    if result.outcome is FinalizeOutcome.INDETERMINATE:
        return pending_page(deep_link_base)
    return error_page(deep_link_base)
