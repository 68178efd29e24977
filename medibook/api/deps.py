from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.core.db import async_session_maker, get_session
from medibook.core.security import decode_access_token
from medibook.models.user import Doctor, Patient, User
from medibook.services.appointment_service import DoctorLocks, booking_locks
from medibook.services.notification_service import NotificationDispatcher, Notifier

bearer = HTTPBearer(auto_error=False)

_dispatcher = NotificationDispatcher(async_session_maker)


def get_notifier() -> Notifier:
    return _dispatcher


def get_booking_locks() -> DoctorLocks:
    return booking_locks


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


async def get_current_user(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthenticated("Missing or invalid authorization header")
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise _unauthenticated("Invalid or expired token")
    user = await session.get(User, user_id)
    if user is None:
        raise _unauthenticated("User not found")
    return user


async def get_current_patient(
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
) -> Patient:
    patient = (await session.execute(select(Patient).where(Patient.user_id == user.id))).scalar_one_or_none()
    if patient is None:
        raise _forbidden("Patient authentication required")
    return patient


async def get_current_doctor(
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
) -> Doctor:
    doctor = (await session.execute(select(Doctor).where(Doctor.user_id == user.id))).scalar_one_or_none()
    if doctor is None:
        raise _forbidden("Doctor authentication required")
    if not doctor.is_active:
        raise _forbidden("Doctor account is inactive")
    return doctor
