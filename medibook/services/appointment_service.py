"""Appointment lifecycle: booking and the doctor/patient status transitions.

    pending --confirm--> confirmed --complete--> completed
    pending|confirmed --reject (doctor) / cancel (patient)--> cancelled

completed and cancelled are terminal. Every transition checks, in order, that
the appointment exists, that the actor owns it and that the move is legal
from the current status, then writes the change with a conditional UPDATE and
notifies the counter-party.
"""

import asyncio
import logging
import uuid
from datetime import date
from typing import NamedTuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from medibook.core.config import settings
from medibook.core.errors import (
    InvalidStateTransition,
    NotFoundError,
    SlotUnavailableError,
    Unauthorized,
    ValidationError,
)
from medibook.models.appointment import Appointment, AppointmentCreate, AppointmentStatus, utc_now
from medibook.models.notification import NotificationEvent
from medibook.models.user import Doctor, Patient
from medibook.services import notification_service as messages
from medibook.services.conflict_guard import MINUTES_PER_DAY, is_blocked, minutes_since_midnight
from medibook.services.notification_service import Notifier
from medibook.services.slot_service import (
    booked_intervals,
    ensure_not_past,
    ensure_wall_clock,
    load_active_appointments,
    validate_duration,
)

logger = logging.getLogger(__name__)

PATIENT = "patient"
DOCTOR = "doctor"

PENDING = AppointmentStatus.PENDING.value
CONFIRMED = AppointmentStatus.CONFIRMED.value
COMPLETED = AppointmentStatus.COMPLETED.value
CANCELLED = AppointmentStatus.CANCELLED.value

MIN_URGENCY = 1
MAX_URGENCY = 5


class Transition(NamedTuple):
    actor: str
    sources: tuple[str, ...]
    target: str


TRANSITIONS: dict[str, Transition] = {
    "confirm": Transition(DOCTOR, (PENDING,), CONFIRMED),
    "reject": Transition(DOCTOR, (PENDING, CONFIRMED), CANCELLED),
    "cancel": Transition(PATIENT, (PENDING, CONFIRMED), CANCELLED),
    "complete": Transition(DOCTOR, (CONFIRMED,), COMPLETED),
}


class DoctorLocks:
    """One asyncio.Lock per doctor; serializes booking check-then-insert."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}

    def for_doctor(self, doctor_id: int) -> asyncio.Lock:
        lock = self._locks.get(doctor_id)
        if lock is None:
            lock = self._locks[doctor_id] = asyncio.Lock()
        return lock


booking_locks = DoctorLocks()


class AppointmentFilters(SQLModel):
    status: AppointmentStatus | None = None
    appointment_date: date | None = None
    page: int = 1
    limit: int = 20


# --- persistence primitives ---

async def get_appointment(session: AsyncSession, appointment_id: uuid.UUID) -> Appointment:
    appointment = await session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


async def insert_appointment(session: AsyncSession, appointment: Appointment) -> Appointment:
    """Insert and commit; the active-slot unique index turns a lost race into SlotUnavailableError."""
    session.add(appointment)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        logger.info(
            "Booking conflict at insert for doctor %s on %s %s",
            appointment.doctor_id,
            appointment.appointment_date,
            appointment.appointment_time,
        )
        raise SlotUnavailableError() from e
    await session.refresh(appointment)
    return appointment


async def update_appointment_status(
    session: AsyncSession,
    appointment_id: uuid.UUID,
    expected: tuple[str, ...],
    new_status: str,
    notes: str | None,
) -> bool:
    """Compare-and-set the status. Returns False if the row was no longer in ``expected``."""
    result = await session.execute(
        update(Appointment)
        .where(Appointment.id == appointment_id, Appointment.status.in_(expected))
        .values(status=new_status, notes=notes, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount == 1


async def _notify(notifier: Notifier, event: NotificationEvent) -> None:
    # the appointment change is already committed at this point
    try:
        await notifier.notify(event)
    except Exception:
        logger.exception("Notification to user %s failed", event.user_id)


# --- booking ---

def validate_booking(data: AppointmentCreate) -> None:
    validate_duration(data.duration_minutes)
    ensure_wall_clock(data.appointment_time, "appointment_time")
    if not MIN_URGENCY <= data.urgency_level <= MAX_URGENCY:
        raise ValidationError(f"Urgency level must be between {MIN_URGENCY} and {MAX_URGENCY}")
    if data.notes and len(data.notes) > settings.max_notes_length:
        raise ValidationError(f"Notes must be {settings.max_notes_length} characters or fewer")
    if minutes_since_midnight(data.appointment_time) + data.duration_minutes > MINUTES_PER_DAY:
        raise ValidationError("Appointment must end on the day it starts")


async def book_appointment(
    session: AsyncSession,
    patient_id: int,
    data: AppointmentCreate,
    notifier: Notifier,
    locks: DoctorLocks = booking_locks,
    today: date | None = None,
) -> Appointment:
    validate_booking(data)
    ensure_not_past(data.appointment_date, today)

    patient = await session.get(Patient, patient_id)
    if patient is None:
        raise NotFoundError("Patient not found")
    doctor = await session.get(Doctor, data.doctor_id)
    if doctor is None or not doctor.is_active:
        raise NotFoundError("Doctor not found or inactive")

    start_time = data.appointment_time.replace(second=0, microsecond=0)
    start = minutes_since_midnight(start_time)

    async with locks.for_doctor(doctor.id):
        active = await load_active_appointments(session, doctor.id, data.appointment_date)
        if is_blocked(start, data.duration_minutes, booked_intervals(active)):
            raise SlotUnavailableError()
        appointment = await insert_appointment(
            session,
            Appointment(
                patient_id=patient.id,
                doctor_id=doctor.id,
                conversation_id=data.conversation_id,
                appointment_date=data.appointment_date,
                appointment_time=start_time,
                duration_minutes=data.duration_minutes,
                urgency_level=data.urgency_level,
                notes=data.notes or None,
                status=PENDING,
            ),
        )

    logger.info("Appointment %s booked by patient %s with doctor %s", appointment.id, patient.id, doctor.id)
    await _notify(notifier, messages.new_request_for_doctor(appointment, doctor.user_id))
    await _notify(notifier, messages.request_sent_to_patient(appointment, patient.user_id, doctor))
    return appointment


# --- transitions ---

async def _apply_transition(
    session: AsyncSession,
    name: str,
    appointment_id: uuid.UUID,
    actor_id: int,
    notes: str | None,
) -> Appointment:
    transition = TRANSITIONS[name]
    appointment = await get_appointment(session, appointment_id)

    owner_id = appointment.doctor_id if transition.actor == DOCTOR else appointment.patient_id
    if owner_id != actor_id:
        raise Unauthorized(f"Only the appointment's {transition.actor} can {name} it")

    if appointment.status not in transition.sources:
        raise InvalidStateTransition(f"Cannot {name} an appointment that is {appointment.status}")

    changed = await update_appointment_status(
        session, appointment.id, transition.sources, transition.target, notes
    )
    await session.refresh(appointment)
    if not changed:
        raise InvalidStateTransition(f"Cannot {name} an appointment that is {appointment.status}")

    logger.info("Appointment %s %s by %s %s", appointment.id, transition.target, transition.actor, actor_id)
    return appointment


async def _user_id_of_patient(session: AsyncSession, patient_id: int) -> int:
    patient = await session.get(Patient, patient_id)
    if patient is None:
        raise NotFoundError("Patient not found")
    return patient.user_id


async def _user_id_of_doctor(session: AsyncSession, doctor_id: int) -> int:
    doctor = await session.get(Doctor, doctor_id)
    if doctor is None:
        raise NotFoundError("Doctor not found")
    return doctor.user_id


async def confirm_appointment(
    session: AsyncSession,
    doctor_id: int,
    appointment_id: uuid.UUID,
    notifier: Notifier,
    notes: str | None = None,
) -> Appointment:
    appointment = await _apply_transition(
        session, "confirm", appointment_id, doctor_id, f"Doctor notes: {notes}" if notes else None
    )
    user_id = await _user_id_of_patient(session, appointment.patient_id)
    await _notify(notifier, messages.confirmed_for_patient(appointment, user_id))
    return appointment


async def reject_appointment(
    session: AsyncSession,
    doctor_id: int,
    appointment_id: uuid.UUID,
    notifier: Notifier,
    reason: str | None = None,
) -> Appointment:
    appointment = await _apply_transition(
        session,
        "reject",
        appointment_id,
        doctor_id,
        f"Cancelled by doctor: {reason}" if reason else "Cancelled by doctor",
    )
    user_id = await _user_id_of_patient(session, appointment.patient_id)
    await _notify(notifier, messages.cancelled_by_doctor(appointment, user_id, reason))
    return appointment


async def cancel_appointment(
    session: AsyncSession,
    patient_id: int,
    appointment_id: uuid.UUID,
    notifier: Notifier,
    reason: str | None = None,
) -> Appointment:
    appointment = await _apply_transition(
        session,
        "cancel",
        appointment_id,
        patient_id,
        f"Cancelled by patient: {reason}" if reason else "Cancelled by patient",
    )
    user_id = await _user_id_of_doctor(session, appointment.doctor_id)
    await _notify(notifier, messages.cancelled_by_patient(appointment, user_id, reason))
    return appointment


def _completion_notes(notes: str | None, prescriptions: str | None) -> str:
    parts = []
    if notes:
        parts.append(f"Consultation notes: {notes}")
    if prescriptions:
        parts.append(f"Prescriptions: {prescriptions}")
    return "; ".join(parts) if parts else "Consultation completed"


async def complete_appointment(
    session: AsyncSession,
    doctor_id: int,
    appointment_id: uuid.UUID,
    notifier: Notifier,
    notes: str | None = None,
    prescriptions: str | None = None,
) -> Appointment:
    appointment = await _apply_transition(
        session, "complete", appointment_id, doctor_id, _completion_notes(notes, prescriptions)
    )
    user_id = await _user_id_of_patient(session, appointment.patient_id)
    await _notify(notifier, messages.completed_for_patient(appointment, user_id))
    return appointment


# --- listing ---

async def list_patient_appointments(
    session: AsyncSession, patient_id: int, filters: AppointmentFilters
) -> list[tuple[Appointment, Doctor]]:
    """Newest first."""
    q = (
        select(Appointment, Doctor)
        .join(Doctor, Doctor.id == Appointment.doctor_id)
        .where(Appointment.patient_id == patient_id)
        .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
    )
    if filters.status is not None:
        q = q.where(Appointment.status == filters.status.value)
    if filters.appointment_date is not None:
        q = q.where(Appointment.appointment_date == filters.appointment_date)
    q = q.offset((filters.page - 1) * filters.limit).limit(filters.limit)
    result = await session.execute(q)
    return [(a, d) for a, d in result.all()]


async def list_doctor_appointments(
    session: AsyncSession, doctor_id: int, filters: AppointmentFilters
) -> list[tuple[Appointment, Patient]]:
    """Chronological."""
    q = (
        select(Appointment, Patient)
        .join(Patient, Patient.id == Appointment.patient_id)
        .where(Appointment.doctor_id == doctor_id)
        .order_by(Appointment.appointment_date, Appointment.appointment_time)
    )
    if filters.status is not None:
        q = q.where(Appointment.status == filters.status.value)
    if filters.appointment_date is not None:
        q = q.where(Appointment.appointment_date == filters.appointment_date)
    q = q.offset((filters.page - 1) * filters.limit).limit(filters.limit)
    result = await session.execute(q)
    return [(a, p) for a, p in result.all()]
