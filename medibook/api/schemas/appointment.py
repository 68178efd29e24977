from datetime import date, time

from pydantic import BaseModel, field_validator

from medibook.models.appointment import AppointmentPublic
from medibook.models.availability import AvailableSlot


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD
    doctor_id: int
    available_slots: list[AvailableSlot]
    total_slots: int


class BookAppointmentRequest(BaseModel):
    doctor_id: int
    appointment_date: date
    appointment_time: time
    duration: int = 30
    urgency_level: int = 1
    notes: str | None = None
    conversation_id: str | None = None

    @field_validator("notes", "conversation_id")
    @classmethod
    def strip_blank(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class ReasonRequest(BaseModel):
    reason: str | None = None

    @field_validator("reason")
    @classmethod
    def strip_blank(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class NotesRequest(BaseModel):
    notes: str | None = None

    @field_validator("notes")
    @classmethod
    def strip_blank(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class CompleteAppointmentRequest(NotesRequest):
    prescriptions: str | None = None

    @field_validator("prescriptions")
    @classmethod
    def strip_blank_prescriptions(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class DoctorSummary(BaseModel):
    id: int
    name: str
    phone: str | None = None
    specialty: str


class PatientSummary(BaseModel):
    id: int
    name: str
    phone: str | None = None
    date_of_birth: date | None = None
    age: int | None = None


class PatientAppointment(AppointmentPublic):
    doctor: DoctorSummary


class DoctorAppointment(AppointmentPublic):
    patient: PatientSummary


class TransitionResponse(BaseModel):
    success: bool = True
    message: str
    appointment: AppointmentPublic
