import logging
from collections import Counter
from typing import Protocol

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medibook.core.errors import NotFoundError
from medibook.models.appointment import Appointment
from medibook.models.notification import Notification, NotificationEvent, NotificationPublic
from medibook.models.user import Doctor

logger = logging.getLogger(__name__)

TYPE_APPOINTMENT_REQUEST = "appointment_request"
TYPE_APPOINTMENT_CONFIRMED = "appointment_confirmed"
TYPE_APPOINTMENT_CANCELLED = "appointment_cancelled"
TYPE_GENERAL = "general"


class Notifier(Protocol):
    async def notify(self, event: NotificationEvent) -> None: ...


class NotificationDispatcher:
    """Stores notifications in their own session.

    Delivery is fire-and-forget: a failure is logged and swallowed so it never
    undoes the appointment change that triggered it.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def notify(self, event: NotificationEvent) -> None:
        try:
            async with self._session_maker() as session:
                session.add(Notification(**event.model_dump()))
                await session.commit()
            logger.debug("Notification created for user %s (%s)", event.user_id, event.type)
        except Exception as e:
            logger.exception("Failed to create notification for user %s: %s", event.user_id, e)


# --- message builders ---

def _when(appointment: Appointment) -> str:
    return f"{appointment.appointment_date.isoformat()} at {appointment.appointment_time.strftime('%H:%M')}"


def new_request_for_doctor(appointment: Appointment, doctor_user_id: int) -> NotificationEvent:
    return NotificationEvent(
        user_id=doctor_user_id,
        title="New appointment request",
        message=f"You have a new appointment request for {_when(appointment)}",
        type=TYPE_APPOINTMENT_REQUEST,
        related_appointment_id=appointment.id,
    )


def request_sent_to_patient(
    appointment: Appointment, patient_user_id: int, doctor: Doctor
) -> NotificationEvent:
    return NotificationEvent(
        user_id=patient_user_id,
        title="Appointment request sent",
        message=(
            f"Your appointment request with {doctor.display_name} for {_when(appointment)} "
            "has been sent. Waiting for confirmation."
        ),
        type=TYPE_APPOINTMENT_REQUEST,
        related_appointment_id=appointment.id,
    )


def confirmed_for_patient(appointment: Appointment, patient_user_id: int) -> NotificationEvent:
    return NotificationEvent(
        user_id=patient_user_id,
        title="Appointment confirmed",
        message=f"Your appointment on {_when(appointment)} has been confirmed by your doctor",
        type=TYPE_APPOINTMENT_CONFIRMED,
        related_appointment_id=appointment.id,
    )


def cancelled_by_doctor(
    appointment: Appointment, patient_user_id: int, reason: str | None
) -> NotificationEvent:
    message = f"Your appointment on {_when(appointment)} has been cancelled by your doctor"
    if reason:
        message += f". Reason: {reason}"
    return NotificationEvent(
        user_id=patient_user_id,
        title="Appointment cancelled",
        message=message,
        type=TYPE_APPOINTMENT_CANCELLED,
        related_appointment_id=appointment.id,
    )


def cancelled_by_patient(
    appointment: Appointment, doctor_user_id: int, reason: str | None
) -> NotificationEvent:
    message = f"The patient cancelled their appointment on {_when(appointment)}"
    if reason:
        message += f". Reason: {reason}"
    return NotificationEvent(
        user_id=doctor_user_id,
        title="Appointment cancelled",
        message=message,
        type=TYPE_APPOINTMENT_CANCELLED,
        related_appointment_id=appointment.id,
    )


def completed_for_patient(appointment: Appointment, patient_user_id: int) -> NotificationEvent:
    return NotificationEvent(
        user_id=patient_user_id,
        title="Consultation completed",
        message=(
            f"Your consultation on {_when(appointment)} is completed. "
            "Check your medical documents for details."
        ),
        type=TYPE_GENERAL,
        related_appointment_id=appointment.id,
    )


# --- inbox ---

def _to_public(n: Notification) -> NotificationPublic:
    return NotificationPublic(
        id=n.id,
        title=n.title,
        message=n.message,
        type=n.type,
        is_read=n.is_read,
        created_at=n.created_at,
        related_appointment_id=n.related_appointment_id,
    )


async def list_notifications(
    session: AsyncSession,
    user_id: int,
    page: int = 1,
    limit: int = 20,
    unread_only: bool = False,
) -> list[NotificationPublic]:
    q = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        q = q.where(Notification.is_read == False)  # noqa: E712
    q = q.order_by(Notification.created_at.desc(), Notification.id.desc())
    q = q.offset((page - 1) * limit).limit(limit)
    result = await session.execute(q)
    return [_to_public(n) for n in result.scalars().all()]


async def count_unread(session: AsyncSession, user_id: int) -> int:
    result = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read == False,  # noqa: E712
        )
    )
    return result.scalar_one()


async def _get_owned(session: AsyncSession, notification_id: int, user_id: int) -> Notification:
    result = await session.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found")
    return notification


async def mark_as_read(session: AsyncSession, notification_id: int, user_id: int) -> bool:
    """Returns False when the notification was already read."""
    notification = await _get_owned(session, notification_id, user_id)
    if notification.is_read:
        return False
    notification.is_read = True
    session.add(notification)
    await session.flush()
    return True


async def mark_all_as_read(session: AsyncSession, user_id: int) -> int:
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
        .values(is_read=True)
    )
    await session.flush()
    return result.rowcount or 0


async def delete_notification(session: AsyncSession, notification_id: int, user_id: int) -> None:
    notification = await _get_owned(session, notification_id, user_id)
    await session.delete(notification)
    await session.flush()


async def notification_stats(session: AsyncSession, user_id: int) -> dict:
    result = await session.execute(
        select(Notification.type, Notification.is_read).where(Notification.user_id == user_id)
    )
    rows = result.all()
    total = len(rows)
    unread = sum(1 for _, is_read in rows if not is_read)
    return {
        "total": total,
        "unread": unread,
        "read": total - unread,
        "by_type": dict(Counter(t for t, _ in rows)),
    }
