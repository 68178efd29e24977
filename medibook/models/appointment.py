import uuid
from datetime import UTC, date, datetime, time
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, Index, text
from sqlmodel import Field, SQLModel

ACTIVE_STATUS_CLAUSE = "status IN ('pending', 'confirmed')"


def utc_now() -> datetime:
    return datetime.now(UTC)


class AppointmentStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # at most one active booking per doctor/date/start time
        Index(
            "uq_appointments_active_slot",
            "doctor_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text(ACTIVE_STATUS_CLAUSE),
            sqlite_where=text(ACTIVE_STATUS_CLAUSE),
        ),
        CheckConstraint("duration_minutes > 0", name="ck_appointments_duration"),
        CheckConstraint("urgency_level BETWEEN 1 AND 5", name="ck_appointments_urgency"),
    )
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    conversation_id: str | None = None
    appointment_date: date = Field(index=True)
    appointment_time: time
    duration_minutes: int = 30
    status: str = Field(default=AppointmentStatus.PENDING.value, index=True)
    urgency_level: int = 1
    notes: str | None = None
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class AppointmentCreate(SQLModel):
    doctor_id: int
    appointment_date: date
    appointment_time: time
    duration_minutes: int = 30
    urgency_level: int = 1
    notes: str | None = None
    conversation_id: str | None = None


class AppointmentPublic(SQLModel):
    id: uuid.UUID
    patient_id: int
    doctor_id: int
    appointment_date: date
    appointment_time: time
    duration_minutes: int
    status: AppointmentStatus
    urgency_level: int
    notes: str | None = None
    conversation_id: str | None = None
    created_at: datetime
    updated_at: datetime
