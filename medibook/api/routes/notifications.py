from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from medibook.api.deps import get_current_user, get_session
from medibook.api.schemas.notification import (
    MessageResponse,
    NotificationListResponse,
    NotificationStats,
)
from medibook.core.config import settings
from medibook.models.user import User
from medibook.services.notification_service import (
    count_unread,
    delete_notification,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
    notification_stats,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def my_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.notifications_page_limit, ge=1, le=100),
    unread_only: bool = Query(False),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> NotificationListResponse:
    notifications = await list_notifications(
        session, current_user.id, page=page, limit=limit, unread_only=unread_only
    )
    unread = await count_unread(session, current_user.id)
    return NotificationListResponse(
        notifications=notifications, page=page, limit=limit, unread_count=unread
    )


@router.get("/stats", response_model=NotificationStats)
async def stats(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> NotificationStats:
    return NotificationStats(**await notification_stats(session, current_user.id))


@router.patch("/mark-all-read", response_model=MessageResponse)
async def read_all(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    n = await mark_all_as_read(session, current_user.id)
    return MessageResponse(message=f"{n} notification(s) marked as read")


@router.patch("/{notification_id}/read", response_model=MessageResponse)
async def read_one(
    notification_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    changed = await mark_as_read(session, notification_id, current_user.id)
    return MessageResponse(message="Notification marked as read" if changed else "Notification already read")


@router.delete("/{notification_id}", response_model=MessageResponse)
async def remove(
    notification_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    await delete_notification(session, notification_id, current_user.id)
    return MessageResponse(message="Notification deleted successfully")
