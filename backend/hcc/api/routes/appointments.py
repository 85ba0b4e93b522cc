"""Appointments: booking, cancellation, status updates and listings."""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hcc.api.deps import ensure_self, get_db, require_roles, resolve_self_id
from hcc.core.audit import AuditLog
from hcc.models.user import User
from hcc.schemas.appointment import AppointmentCreate, AppointmentRecord, AppointmentResponse, AppointmentStatusUpdate
from hcc.services import appointment_service

router = APIRouter()


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("student")),
):
    appointment = appointment_service.book_slot(db, current_user, data.slot_id)
    AuditLog.log_action("book", "appointment", appointment.id, current_user, changes={"slot_id": data.slot_id})
    return appointment


@router.get("/all", response_model=List[AppointmentRecord])
def all_appointments(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("receptionist")),
):
    """Every appointment, cancelled ones included."""
    return appointment_service.list_all(db)


@router.get("/student/{student_id}", response_model=List[AppointmentRecord])
def student_appointments(
    student_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("student")),
):
    target = resolve_self_id(student_id, current_user)
    ensure_self(target, current_user, "appointment")
    return appointment_service.list_for_patient(db, target)


@router.get("/doctor/{doctor_id}", response_model=List[AppointmentRecord])
def doctor_appointments(
    doctor_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("doctor")),
):
    target = resolve_self_id(doctor_id, current_user)
    ensure_self(target, current_user, "appointment")
    return appointment_service.list_for_doctor(db, target)


@router.delete("/{appointment_id}", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("student")),
):
    """Owning student cancels. The row is kept with status ``cancelled``."""
    appointment = appointment_service.cancel_appointment(db, current_user, appointment_id)
    AuditLog.log_action("cancel", "appointment", appointment_id, current_user)
    return appointment


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("doctor", "receptionist")),
):
    appointment = appointment_service.update_status(db, current_user, appointment_id, data.status)
    AuditLog.log_action("update", "appointment", appointment_id, current_user, changes={"status": data.status})
    return appointment
