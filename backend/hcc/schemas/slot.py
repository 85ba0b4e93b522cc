from datetime import date, time
from typing import List, Optional
from pydantic import BaseModel, Field, field_serializer, field_validator


class SlotTime(BaseModel):
    time: time

    @field_validator("time")
    @classmethod
    def whole_minutes(cls, v: time) -> time:
        if v.second or v.microsecond:
            raise ValueError("Slot times are whole minutes (HH:MM)")
        return v


class SlotBatchCreate(BaseModel):
    date: date
    slots: List[SlotTime] = Field(min_length=1)
    # Required when a receptionist creates slots on a doctor's behalf
    doctor_id: Optional[int] = None


class SlotUpdate(BaseModel):
    is_available: bool


class SlotResponse(BaseModel):
    id: int
    doctor_id: int
    date: date
    time: time
    is_available: bool

    @field_serializer("time")
    def serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    class Config:
        from_attributes = True
