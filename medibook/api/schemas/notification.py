from pydantic import BaseModel

from medibook.models.notification import NotificationPublic


class NotificationListResponse(BaseModel):
    notifications: list[NotificationPublic]
    page: int
    limit: int
    unread_count: int


class NotificationStats(BaseModel):
    total: int
    unread: int
    read: int
    by_type: dict[str, int]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
