import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from medibook.models.appointment import utc_now


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    title: str
    message: str
    type: str = Field(default="general", index=True)
    related_appointment_id: uuid.UUID | None = Field(default=None, foreign_key="appointments.id")
    is_read: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)


class NotificationEvent(SQLModel):
    """What a booking transition asks the notification collaborator to deliver."""

    user_id: int
    title: str
    message: str
    type: str
    related_appointment_id: uuid.UUID | None = None


class NotificationPublic(SQLModel):
    id: int
    title: str
    message: str
    type: str
    is_read: bool
    created_at: datetime
    related_appointment_id: uuid.UUID | None = None
