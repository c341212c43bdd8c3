"""HTTP surface for the payment redirect flow and provider webhooks."""

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from medpay.common.errors import CheckoutError, ValidationError, WebhookVerificationError
from medpay.common.logging import logger
from medpay.services.checkout import views
from medpay.services.checkout.schemas import CreateOrderRequest, CreateOrderResponse, ErrorResponse
from medpay.services.checkout.service import CheckoutService, WebhookReceiver

router = APIRouter()


def get_checkout_service(request: Request) -> CheckoutService:
    return request.app.state.checkout_service


def get_webhook_receiver(request: Request) -> WebhookReceiver:
    return request.app.state.webhook_receiver


def _error_response(status_code: int, message: str, exc: CheckoutError) -> JSONResponse:
    body = ErrorResponse(
        message=message,
        error_type=exc.__class__.__name__,
        details=exc.detail if exc.detail is not None else exc.message,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "/create-order",
    response_model=CreateOrderResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_order(
    req: CreateOrderRequest | None = None,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Open a provider order and hand back the payer approval URL."""

    try:
        return await service.create_order(req or CreateOrderRequest(), idempotency_key=idempotency_key)
    except ValidationError as exc:
        return _error_response(400, exc.message, exc)
    except CheckoutError as exc:
        logger.error(
            "create_order_failed type=%s error=%s detail=%s",
            exc.__class__.__name__,
            exc.message,
            exc.detail,
        )
        return _error_response(500, "Failed to create PayPal order", exc)


@router.get("/capture-order")
async def capture_order(
    token: str | None = None,
    service: CheckoutService = Depends(get_checkout_service),
):
    """Provider return URL: capture the approved order and show the outcome."""

    if not token:
        return PlainTextResponse("Missing order token", status_code=400)
    result = await service.finalize_order(token)
    page = views.page_for_result(result, service.config.app_deep_link_base)
    return HTMLResponse(page.render(), status_code=page.status_code)


@router.get("/cancel-order", response_class=HTMLResponse)
def cancel_order(service: CheckoutService = Depends(get_checkout_service)):
    """Provider cancel URL."""

    page = service.handle_cancel()
    return HTMLResponse(page.render(), status_code=page.status_code)


@router.post("/paypal-webhook", response_class=PlainTextResponse)
async def paypal_webhook(
    request: Request,
    receiver: WebhookReceiver = Depends(get_webhook_receiver),
):
    # Signature checks need the exact bytes the provider sent.
    raw_body = await request.body()
    try:
        await receiver.receive_event(raw_body, request.headers)
    except WebhookVerificationError as exc:
        logger.warning("paypal_webhook_rejected reason=%s detail=%s", exc.message, exc.detail)
        return PlainTextResponse("Invalid webhook signature", status_code=400)
    except CheckoutError as exc:
        # Non-2xx makes the provider redeliver later.
        logger.error("paypal_webhook_verification_unavailable error=%s detail=%s", exc.message, exc.detail)
        return PlainTextResponse("Verification unavailable", status_code=503)
    return PlainTextResponse("OK", status_code=200)
