"""Prescription PDF rendering.

Pure transform from submitted clinical data to a one-off PDF; nothing is
stored and nothing here touches the payment provider.
"""

from datetime import date
from typing import Any

from fpdf import FPDF

from medpay.common.errors import DocumentRenderError
from medpay.common.logging import logger
from medpay.services.prescription.schemas import PrescriptionRequest


def _or_na(value: Any) -> str:
    if value is None or value == "":
        return "N/A"
    return str(value)


def prescription_line(item: Any) -> str:
    """Items arrive either as plain strings or as `{"prescription": ...}` objects."""

    if isinstance(item, dict) and item.get("prescription"):
        return str(item["prescription"])
    return str(item)


class PrescriptionRenderer:
    """Lays out a single-page prescription with fpdf2 core fonts."""

    FONT = "Helvetica"

    def __init__(self, today=date.today) -> None:
        self.today = today

    def _heading(self, pdf: FPDF, text: str) -> None:
        pdf.set_font(self.FONT, "U", 16)
        pdf.cell(0, 9, text, new_x="LMARGIN", new_y="NEXT")

    def _line(self, pdf: FPDF, text: str, align: str = "L") -> None:
        pdf.set_font(self.FONT, size=12)
        pdf.multi_cell(0, 7, text, align=align, new_x="LMARGIN", new_y="NEXT")

    def render(self, req: PrescriptionRequest) -> bytes:
        if not req.is_complete():
            raise DocumentRenderError("Missing required fields for prescription")

        patient = req.patient_data
        vitals = req.vitals
        try:
            pdf = FPDF()
            # Curly quotes and dashes from mobile keyboards sit outside latin-1.
            pdf.core_fonts_encoding = "windows-1252"
            pdf.add_page()
            pdf.set_auto_page_break(auto=True, margin=15)

            pdf.set_font(self.FONT, size=20)
            pdf.cell(0, 12, "Medical Prescription", align="C", new_x="LMARGIN", new_y="NEXT")
            pdf.ln(5)
            pdf.set_font(self.FONT, size=14)
            pdf.cell(0, 8, f"Date: {self.today().strftime('%m/%d/%Y')}", new_x="LMARGIN", new_y="NEXT")
            pdf.ln(5)

            self._heading(pdf, "Patient Details")
            self._line(pdf, f"Name: {_or_na(patient.name)}")
            self._line(pdf, f"Age: {_or_na(patient.age)}")
            self._line(pdf, f"Injury/Disease: {_or_na(patient.purpose)}")
            pdf.ln(5)

            self._heading(pdf, "Doctor")
            self._line(pdf, f"Dr. {req.doctor_name}")
            pdf.ln(5)

            self._heading(pdf, "Vitals")
            self._line(pdf, f"Blood Pressure: {_or_na(vitals.blood_pressure)}")
            self._line(pdf, f"Blood Sugar: {_or_na(vitals.blood_sugar)}")
            self._line(pdf, f"Body Temperature: {_or_na(vitals.body_temperature)}")
            pdf.ln(5)

            self._heading(pdf, "Prescriptions")
            if req.prescriptions:
                for index, item in enumerate(req.prescriptions, start=1):
                    self._line(pdf, f"{index}. {prescription_line(item)}")
            else:
                self._line(pdf, "No prescriptions provided")

            pdf.ln(10)
            self._line(pdf, "Signature: ____________________", align="R")

            # fpdf2 returns a bytearray
            document = bytes(pdf.output())
        except Exception as exc:
            raise DocumentRenderError(f"{exc.__class__.__name__}: {exc}") from exc

        logger.info("prescription_rendered bytes=%s items=%s", len(document), len(req.prescriptions))
        return document
