"""Prescription document rendering and its endpoint."""

import base64
from datetime import date

import pytest

from medpay.common.errors import DocumentRenderError
from medpay.services.prescription.schemas import PrescriptionRequest
from medpay.services.prescription.service import PrescriptionRenderer, prescription_line

PAYLOAD = {
    "patientData": {"name": "Jane Roe", "age": 34, "purpose": "Sprained ankle"},
    "doctorName": "Okafor",
    "prescriptions": ["Ibuprofen 400mg twice daily", {"prescription": "Rest and ice for 3 days"}],
    "vitals": {"blood_pressure": "120/80", "blood_sugar": "95 mg/dL", "body_temperature": "36.8 C"},
}


def test_render_produces_pdf():
    renderer = PrescriptionRenderer(today=lambda: date(2026, 10, 19))

    document = renderer.render(PrescriptionRequest.model_validate(PAYLOAD))

    assert document.startswith(b"%PDF")


def test_render_with_empty_prescriptions_and_missing_vitals():
    payload = dict(PAYLOAD, prescriptions=[], vitals={}, patientData={})

    document = PrescriptionRenderer().render(PrescriptionRequest.model_validate(payload))

    assert document.startswith(b"%PDF")


def test_render_rejects_incomplete_request():
    with pytest.raises(DocumentRenderError):
        PrescriptionRenderer().render(PrescriptionRequest.model_validate({"doctorName": "Okafor"}))


def test_render_failure_is_wrapped():
    payload = dict(PAYLOAD, doctorName="王医生")

    with pytest.raises(DocumentRenderError):
        PrescriptionRenderer().render(PrescriptionRequest.model_validate(payload))


def test_prescription_line():
    assert prescription_line("Amoxicillin") == "Amoxicillin"
    assert prescription_line({"prescription": "Paracetamol"}) == "Paracetamol"


def test_endpoint_returns_base64_pdf(api_client, paypal):
    resp = api_client.post("/generate-prescription-pdf", json=PAYLOAD)

    assert resp.status_code == 200
    assert base64.b64decode(resp.json()["base64Data"]).startswith(b"%PDF")
    assert paypal.calls == []


@pytest.mark.parametrize("missing", ["patientData", "doctorName", "prescriptions", "vitals"])
def test_endpoint_rejects_missing_fields(api_client, missing):
    payload = {key: value for key, value in PAYLOAD.items() if key != missing}

    resp = api_client.post("/generate-prescription-pdf", json=payload)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required fields for prescription"}


def test_endpoint_render_failure(api_client):
    resp = api_client.post("/generate-prescription-pdf", json=dict(PAYLOAD, doctorName="王医生"))

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] is True
    assert body["message"] == "Error generating PDF"


TYPOGRAPHIC_PAYLOAD = dict(
    PAYLOAD,
    patientData={"name": "Seán O’Brien", "age": 52, "purpose": "“Persistent” cough"},
    prescriptions=["Paracetamol 500mg – twice daily", "Rest… and fluids"],
)


def test_render_accepts_typographic_punctuation():
    document = PrescriptionRenderer().render(PrescriptionRequest.model_validate(TYPOGRAPHIC_PAYLOAD))

    assert document.startswith(b"%PDF")


def test_endpoint_accepts_typographic_punctuation(api_client):
    resp = api_client.post("/generate-prescription-pdf", json=TYPOGRAPHIC_PAYLOAD)

    assert resp.status_code == 200
    assert base64.b64decode(resp.json()["base64Data"]).startswith(b"%PDF")


def test_malformed_sections_degrade_to_empty():
    req = PrescriptionRequest.model_validate(
        dict(PAYLOAD, prescriptions="none", vitals="n/a", patientData=["Jane"], doctorName=7)
    )

    assert req.prescriptions == []
    assert req.vitals.blood_pressure is None
    assert req.patient_data.name is None
    assert req.doctor_name == "7"
    assert req.is_complete()


def test_endpoint_renders_malformed_sections(api_client):
    payload = dict(PAYLOAD, prescriptions="none", vitals="n/a")

    resp = api_client.post("/generate-prescription-pdf", json=payload)

    assert resp.status_code == 200
    assert base64.b64decode(resp.json()["base64Data"]).startswith(b"%PDF")


def test_endpoint_accepts_non_string_patient_fields(api_client):
    payload = dict(PAYLOAD, patientData={"name": 12, "age": "34", "purpose": ["cough"]})

    resp = api_client.post("/generate-prescription-pdf", json=payload)

    assert resp.status_code == 200
