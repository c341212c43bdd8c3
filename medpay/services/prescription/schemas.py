"""Request/response schemas for prescription documents."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PatientData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Any = None
    age: Any = None
    purpose: Any = None


class Vitals(BaseModel):
    model_config = ConfigDict(extra="ignore")

    blood_pressure: Any = None
    blood_sugar: Any = None
    body_temperature: Any = None


class PrescriptionRequest(BaseModel):
    """Clinical data submitted by the client app; field names follow its camelCase.

    Malformed sections degrade to empty ones so the document still renders
    with "N/A" placeholders; only absent sections make the request incomplete.
    """

    model_config = ConfigDict(populate_by_name=True)

    patient_data: PatientData | None = Field(default=None, alias="patientData")
    doctor_name: str | None = Field(default=None, alias="doctorName")
    prescriptions: list[Any] | None = None
    vitals: Vitals | None = None

    @field_validator("patient_data", "vitals", mode="before")
    @classmethod
    def _object_or_empty(cls, value: Any) -> Any:
        if value is None or isinstance(value, (dict, BaseModel)):
            return value
        return {}

    @field_validator("prescriptions", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> Any:
        if value is None or isinstance(value, list):
            return value
        return []

    @field_validator("doctor_name", mode="before")
    @classmethod
    def _number_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def is_complete(self) -> bool:
        return (
            self.patient_data is not None
            and bool(self.doctor_name)
            and self.prescriptions is not None
            and self.vitals is not None
        )


class PrescriptionDocumentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base64_data: str = Field(alias="base64Data")
