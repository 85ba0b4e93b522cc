from datetime import date, time
from typing import Literal, Optional
from pydantic import BaseModel, field_serializer


class AppointmentCreate(BaseModel):
    slot_id: int


class AppointmentStatusUpdate(BaseModel):
    status: Literal["completed", "cancelled"]


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    slot_id: int
    date: date
    time: time
    status: str

    @field_serializer("time")
    def serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    class Config:
        from_attributes = True


class AppointmentRecord(AppointmentResponse):
    """Listing row with the counterpart's name attached."""
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    batch: Optional[str] = None
    branch: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_email: Optional[str] = None
