from pydantic import BaseModel

from medibook.models.availability import DoctorAvailabilityCreate, DoctorAvailabilityPublic


class UpdateAvailabilityRequest(BaseModel):
    availability: list[DoctorAvailabilityCreate]


class AvailabilityResponse(BaseModel):
    availability: list[DoctorAvailabilityPublic]
