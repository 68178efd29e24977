from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.api.deps import get_current_patient, get_session
from medibook.api.schemas.appointment import AvailableSlotsResponse
from medibook.core.config import settings
from medibook.models.user import Patient
from medibook.services.slot_service import get_available_slots

router = APIRouter(prefix="/doctors", tags=["slots"])


@router.get("/{doctor_id}/available-slots", response_model=AvailableSlotsResponse)
async def available_slots(
    doctor_id: int,
    date_param: date = Query(..., alias="date"),
    duration: int = Query(settings.default_duration_minutes),
    session: AsyncSession = Depends(get_session),
    current_patient: Patient = Depends(get_current_patient),
) -> AvailableSlotsResponse:
    """Bookable start times (HH:MM) for the doctor on the given date."""
    slots = await get_available_slots(session, doctor_id, date_param, duration)
    return AvailableSlotsResponse(
        date=date_param.isoformat(),
        doctor_id=doctor_id,
        available_slots=slots,
        total_slots=len(slots),
    )
