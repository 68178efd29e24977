from medibook.models.user import Doctor, Patient, User
from medibook.models.availability import (
    AvailableSlot,
    DoctorAvailability,
    DoctorAvailabilityCreate,
    DoctorAvailabilityPublic,
)
from medibook.models.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
)
from medibook.models.notification import Notification, NotificationEvent, NotificationPublic

__all__ = [
    "User",
    "Patient",
    "Doctor",
    "DoctorAvailability",
    "DoctorAvailabilityCreate",
    "DoctorAvailabilityPublic",
    "AvailableSlot",
    "ACTIVE_STATUSES",
    "Appointment",
    "AppointmentCreate",
    "AppointmentPublic",
    "AppointmentStatus",
    "Notification",
    "NotificationEvent",
    "NotificationPublic",
]
