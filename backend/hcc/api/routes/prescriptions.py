"""Prescriptions: creation by doctors, queues and histories, rejection."""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hcc.api.deps import ensure_self, get_current_user, get_db, require_roles, resolve_self_id
from hcc.core.audit import AuditLog
from hcc.core.exceptions import BusinessError
from hcc.models.user import User
from hcc.schemas.prescription import PendingLineRecord, PrescriptionCreate, PrescriptionResponse
from hcc.services import dispensing_service, prescription_service

router = APIRouter()

drugstore = require_roles("drugstore_manager")

# Roles that may read any patient's prescriptions
PRIVILEGED_READERS = ("doctor", "receptionist")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_prescription(
    data: PrescriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("doctor")),
):
    """Header and every line item are written atomically."""
    prescription = prescription_service.create_prescription(
        db, current_user, data.patient_id, data.drugs, notes=data.notes
    )
    AuditLog.log_action(
        "create", "prescription", prescription.id, current_user,
        changes={"patient_id": data.patient_id, "lines": len(data.drugs)},
    )
    return {"id": prescription.id, "message": "Prescription created successfully"}


@router.get("/pending", response_model=List[PendingLineRecord])
def pending_prescriptions(db: Session = Depends(get_db), current_user: User = Depends(drugstore)):
    """Unsold lines of pending prescriptions, newest first."""
    return prescription_service.pending_lines(db)


@router.get("/patient/{patient_id}", response_model=List[PrescriptionResponse])
def patient_prescriptions(
    patient_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    target = resolve_self_id(patient_id, current_user)
    if current_user.role not in PRIVILEGED_READERS:
        ensure_self(target, current_user, "prescription")
    return prescription_service.list_for_patient(db, target)


@router.get("/doctor/{doctor_id}", response_model=List[PrescriptionResponse])
def doctor_prescriptions(
    doctor_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("doctor")),
):
    target = resolve_self_id(doctor_id, current_user)
    ensure_self(target, current_user, "prescription")
    return prescription_service.list_for_doctor(db, target)


@router.get("/{prescription_id}", response_model=PrescriptionResponse)
def prescription_detail(
    prescription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    detail = prescription_service.get_prescription_detail(db, prescription_id)
    allowed = (
        current_user.role in ("receptionist", "drugstore_manager")
        or current_user.id in (detail["patient_id"], detail["doctor_id"])
    )
    if not allowed:
        AuditLog.log_access_denied("read", "prescription", prescription_id, current_user.id, "not a party")
        raise BusinessError.forbidden(f"user {current_user.id} reading prescription {prescription_id}")
    return detail


@router.patch("/{prescription_id}/reject")
def reject_prescription(prescription_id: int, db: Session = Depends(get_db), current_user: User = Depends(drugstore)):
    prescription = dispensing_service.reject_prescription(db, current_user, prescription_id)
    AuditLog.log_action("reject", "prescription", prescription_id, current_user)
    return {"message": "Prescription rejected successfully", "id": prescription.id, "status": prescription.status}
