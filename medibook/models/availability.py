from datetime import time

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel


class DoctorAvailability(SQLModel, table=True):
    """One recurring weekly opening. day_of_week is Sunday-based (0 = Sunday)."""

    __tablename__ = "doctor_availability"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_availability_window"),
    )
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    day_of_week: int = Field(ge=0, le=6, index=True)
    start_time: time
    end_time: time
    is_active: bool = True


class DoctorAvailabilityCreate(SQLModel):
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = True


class DoctorAvailabilityPublic(SQLModel):
    id: int
    day_of_week: int
    day_name: str
    start_time: time
    end_time: time
    is_active: bool


class AvailableSlot(SQLModel):
    """Derived bookable time; never stored."""

    time: str  # HH:MM
    available: bool = True
    duration: int
