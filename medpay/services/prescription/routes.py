"""HTTP surface for prescription documents."""

import base64

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from medpay.common.config import settings
from medpay.common.errors import DocumentRenderError
from medpay.common.logging import logger
from medpay.common.metrics import documents_rendered_total
from medpay.services.prescription.schemas import PrescriptionDocumentResponse, PrescriptionRequest
from medpay.services.prescription.service import PrescriptionRenderer

router = APIRouter()


def get_renderer(request: Request) -> PrescriptionRenderer:
    return request.app.state.prescription_renderer


@router.post("/generate-prescription-pdf")
def generate_prescription_pdf(
    req: PrescriptionRequest | None = None,
    renderer: PrescriptionRenderer = Depends(get_renderer),
):
    """Render the prescription and return it base64-encoded."""

    if req is None or not req.is_complete():
        documents_rendered_total.labels(service=settings.service_name, outcome="rejected").inc()
        return JSONResponse(status_code=400, content={"error": "Missing required fields for prescription"})
    try:
        document = renderer.render(req)
    except DocumentRenderError as exc:
        logger.error("prescription_render_failed error=%s", exc)
        documents_rendered_total.labels(service=settings.service_name, outcome="failed").inc()
        return JSONResponse(
            status_code=500,
            content={"error": True, "message": "Error generating PDF", "details": str(exc)},
        )

    documents_rendered_total.labels(service=settings.service_name, outcome="ok").inc()
    payload = PrescriptionDocumentResponse(base64_data=base64.b64encode(document).decode("ascii"))
    return payload.model_dump(by_alias=True)
