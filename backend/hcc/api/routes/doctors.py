"""Doctors and their slots."""
from datetime import date as date_type
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hcc.api.deps import get_current_user, get_db, require_roles
from hcc.core.audit import AuditLog
from hcc.core.exceptions import BusinessError
from hcc.models.user import User
from hcc.schemas.appointment import AppointmentRecord
from hcc.schemas.slot import SlotBatchCreate, SlotResponse, SlotUpdate
from hcc.schemas.user import DoctorResponse
from hcc.services import appointment_service, slot_service

router = APIRouter()

slot_managers = require_roles("doctor", "receptionist")


@router.get("", response_model=List[DoctorResponse])
def list_doctors(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return slot_service.list_doctors(db)


@router.post("/slots", response_model=List[SlotResponse], status_code=status.HTTP_201_CREATED)
def create_slots(
    data: SlotBatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(slot_managers),
):
    """
    Bulk-create slots for one date.

    Doctors always create their own slots; a receptionist names the doctor.
    """
    if current_user.role == "doctor":
        doctor_id = current_user.id
    elif data.doctor_id is None:
        raise BusinessError.bad_request("Doctor ID is required")
    else:
        doctor_id = data.doctor_id

    slots = slot_service.create_slots(db, doctor_id, data.date, [s.time for s in data.slots])
    AuditLog.log_action("create", "slot", doctor_id, current_user, changes={"date": data.date, "count": len(slots)})
    return slots


@router.patch("/slots/{slot_id}", response_model=SlotResponse)
def update_slot(
    slot_id: int,
    data: SlotUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(slot_managers),
):
    slot = slot_service.set_availability(db, current_user, slot_id, data.is_available)
    AuditLog.log_action("update", "slot", slot_id, current_user, changes={"is_available": data.is_available})
    return slot


@router.get("/{doctor_id}/slots", response_model=List[SlotResponse])
def list_slots(
    doctor_id: int,
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    """Public: a doctor's slots for one date, ordered by time."""
    if not date:
        raise BusinessError.bad_request("Date is required")
    try:
        slot_date = date_type.fromisoformat(date)
    except ValueError:
        raise BusinessError.bad_request("Date must be YYYY-MM-DD")
    return slot_service.list_slots(db, doctor_id, slot_date)


@router.get("/{doctor_id}/appointments", response_model=List[AppointmentRecord])
def doctor_appointments(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(slot_managers),
):
    """The doctor's own live appointments; receptionists may view any doctor's."""
    if current_user.role == "doctor" and current_user.id != doctor_id:
        AuditLog.log_access_denied("read", "appointment", doctor_id, current_user.id, "not owner")
        raise BusinessError.forbidden(f"doctor {current_user.id} reading appointments of {doctor_id}")
    slot_service.get_doctor(db, doctor_id)
    return appointment_service.list_for_doctor(db, doctor_id)
