import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.api.deps import get_booking_locks, get_current_patient, get_notifier, get_session
from medibook.api.schemas.appointment import (
    BookAppointmentRequest,
    DoctorSummary,
    PatientAppointment,
    ReasonRequest,
    TransitionResponse,
)
from medibook.core.config import settings
from medibook.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
)
from medibook.models.user import Doctor, Patient
from medibook.services.appointment_service import (
    AppointmentFilters,
    DoctorLocks,
    book_appointment,
    cancel_appointment,
    list_patient_appointments,
)
from medibook.services.notification_service import Notifier

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(a)


def _with_doctor(a: Appointment, doctor: Doctor) -> PatientAppointment:
    return PatientAppointment(
        **_to_public(a).model_dump(),
        doctor=DoctorSummary(
            id=doctor.id,
            name=doctor.display_name,
            phone=doctor.phone,
            specialty=doctor.specialty or "N/A",
        ),
    )


@router.post("/book", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book(
    body: BookAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
    notifier: Notifier = Depends(get_notifier),
    locks: DoctorLocks = Depends(get_booking_locks),
) -> AppointmentPublic:
    data = AppointmentCreate(
        doctor_id=body.doctor_id,
        appointment_date=body.appointment_date,
        appointment_time=body.appointment_time,
        duration_minutes=body.duration,
        urgency_level=body.urgency_level,
        notes=body.notes,
        conversation_id=body.conversation_id,
    )
    appointment = await book_appointment(session, current_patient.id, data, notifier, locks=locks)
    return _to_public(appointment)


@router.get("/my-appointments", response_model=list[PatientAppointment])
async def my_appointments(
    status_param: AppointmentStatus | None = Query(None, alias="status"),
    date_param: date | None = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.appointments_page_limit, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
) -> list[PatientAppointment]:
    filters = AppointmentFilters(status=status_param, appointment_date=date_param, page=page, limit=limit)
    rows = await list_patient_appointments(session, current_patient.id, filters)
    return [_with_doctor(a, d) for a, d in rows]


@router.patch("/{appointment_id}/cancel", response_model=TransitionResponse)
async def cancel(
    appointment_id: uuid.UUID,
    body: ReasonRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
    notifier: Notifier = Depends(get_notifier),
) -> TransitionResponse:
    appointment = await cancel_appointment(
        session, current_patient.id, appointment_id, notifier, reason=body.reason if body else None
    )
    return TransitionResponse(message="Appointment cancelled successfully", appointment=_to_public(appointment))
