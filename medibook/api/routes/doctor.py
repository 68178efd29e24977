import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.api.deps import get_current_doctor, get_notifier, get_session
from medibook.api.schemas.appointment import (
    CompleteAppointmentRequest,
    DoctorAppointment,
    NotesRequest,
    PatientSummary,
    ReasonRequest,
    TransitionResponse,
)
from medibook.api.schemas.availability import AvailabilityResponse, UpdateAvailabilityRequest
from medibook.core.config import settings
from medibook.models.appointment import Appointment, AppointmentPublic, AppointmentStatus
from medibook.models.user import Doctor, Patient
from medibook.services.appointment_service import (
    AppointmentFilters,
    complete_appointment,
    confirm_appointment,
    list_doctor_appointments,
    reject_appointment,
)
from medibook.services.availability_service import (
    list_doctor_availability,
    replace_doctor_availability,
)
from medibook.services.notification_service import Notifier

router = APIRouter(prefix="/doctor", tags=["doctor"])


def _age(date_of_birth: date | None, today: date) -> int | None:
    if date_of_birth is None:
        return None
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def _with_patient(a: Appointment, patient: Patient, today: date) -> DoctorAppointment:
    return DoctorAppointment(
        **AppointmentPublic.model_validate(a).model_dump(),
        patient=PatientSummary(
            id=patient.id,
            name=patient.name,
            phone=patient.phone,
            date_of_birth=patient.date_of_birth,
            age=_age(patient.date_of_birth, today),
        ),
    )


@router.get("/appointments", response_model=list[DoctorAppointment])
async def doctor_appointments(
    status_param: AppointmentStatus | None = Query(None, alias="status"),
    date_param: date | None = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.appointments_page_limit, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    current_doctor: Doctor = Depends(get_current_doctor),
) -> list[DoctorAppointment]:
    filters = AppointmentFilters(status=status_param, appointment_date=date_param, page=page, limit=limit)
    rows = await list_doctor_appointments(session, current_doctor.id, filters)
    today = settings.today()
    return [_with_patient(a, p, today) for a, p in rows]


@router.patch("/appointments/{appointment_id}/confirm", response_model=TransitionResponse)
async def confirm(
    appointment_id: uuid.UUID,
    body: NotesRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_doctor: Doctor = Depends(get_current_doctor),
    notifier: Notifier = Depends(get_notifier),
) -> TransitionResponse:
    appointment = await confirm_appointment(
        session, current_doctor.id, appointment_id, notifier, notes=body.notes if body else None
    )
    return TransitionResponse(
        message="Appointment confirmed successfully",
        appointment=AppointmentPublic.model_validate(appointment),
    )


@router.patch("/appointments/{appointment_id}/reject", response_model=TransitionResponse)
async def reject(
    appointment_id: uuid.UUID,
    body: ReasonRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_doctor: Doctor = Depends(get_current_doctor),
    notifier: Notifier = Depends(get_notifier),
) -> TransitionResponse:
    appointment = await reject_appointment(
        session, current_doctor.id, appointment_id, notifier, reason=body.reason if body else None
    )
    return TransitionResponse(
        message="Appointment cancelled successfully",
        appointment=AppointmentPublic.model_validate(appointment),
    )


@router.patch("/appointments/{appointment_id}/complete", response_model=TransitionResponse)
async def complete(
    appointment_id: uuid.UUID,
    body: CompleteAppointmentRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_doctor: Doctor = Depends(get_current_doctor),
    notifier: Notifier = Depends(get_notifier),
) -> TransitionResponse:
    appointment = await complete_appointment(
        session,
        current_doctor.id,
        appointment_id,
        notifier,
        notes=body.notes if body else None,
        prescriptions=body.prescriptions if body else None,
    )
    return TransitionResponse(
        message="Appointment marked as completed successfully",
        appointment=AppointmentPublic.model_validate(appointment),
    )


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    session: AsyncSession = Depends(get_session),
    current_doctor: Doctor = Depends(get_current_doctor),
) -> AvailabilityResponse:
    windows = await list_doctor_availability(session, current_doctor.id)
    return AvailabilityResponse(availability=windows)


@router.put("/availability", response_model=AvailabilityResponse)
async def update_availability(
    body: UpdateAvailabilityRequest,
    session: AsyncSession = Depends(get_session),
    current_doctor: Doctor = Depends(get_current_doctor),
) -> AvailabilityResponse:
    windows = await replace_doctor_availability(session, current_doctor.id, body.availability)
    return AvailabilityResponse(availability=windows)
