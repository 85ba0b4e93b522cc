"""Appointment booking, cancellation and status transitions.

Booking claims the slot with a conditional UPDATE inside the same
transaction that inserts the appointment, so two concurrent bookings of one
slot can never both commit. The partial unique index on
``appointments.slot_id`` backs this up at the storage level.

Cancellation is a soft mark: the row stays with status ``cancelled`` and the
slot is released for booking again.
"""
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from hcc.core.exceptions import BusinessError
from hcc.db.session import transaction
from hcc.models.appointment import Appointment
from hcc.models.slot import Slot
from hcc.models.user import User

logger = logging.getLogger(__name__)

# scheduled -> completed | cancelled; both terminal
ALLOWED_TRANSITIONS = {
    "scheduled": {"completed", "cancelled"},
}


def book_slot(db: Session, patient: User, slot_id: int) -> Appointment:
    slot = db.get(Slot, slot_id)
    if not slot:
        raise BusinessError.not_found("Slot", reason=f"id={slot_id}")

    try:
        with transaction(db):
            claimed = (
                db.query(Slot)
                .filter(Slot.id == slot_id, Slot.is_available.is_(True))
                .update({Slot.is_available: False}, synchronize_session=False)
            )
            if claimed != 1:
                raise BusinessError.not_found("Slot", reason=f"id={slot_id} not available")

            existing = (
                db.query(Appointment.id)
                .filter(
                    Appointment.doctor_id == slot.doctor_id,
                    Appointment.date == slot.date,
                    Appointment.time == slot.time,
                    Appointment.status != "cancelled",
                )
                .first()
            )
            if existing:
                raise BusinessError.conflict("Slot is already booked")

            appointment = Appointment(
                patient_id=patient.id,
                doctor_id=slot.doctor_id,
                slot_id=slot.id,
                date=slot.date,
                time=slot.time,
                status="scheduled",
            )
            db.add(appointment)
            db.flush()
    except IntegrityError:
        raise BusinessError.conflict("Slot is already booked")

    db.refresh(appointment)
    logger.info(f"Patient {patient.id} booked slot {slot_id} (appointment {appointment.id})")
    return appointment


def _get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if not appointment:
        raise BusinessError.not_found("Appointment", reason=f"id={appointment_id}")
    return appointment


def _apply_status(db: Session, appointment: Appointment, new_status: str) -> Appointment:
    if new_status not in ALLOWED_TRANSITIONS.get(appointment.status, set()):
        raise BusinessError.conflict(f"Cannot change appointment from {appointment.status} to {new_status}")

    sources = [s for s, targets in ALLOWED_TRANSITIONS.items() if new_status in targets]
    with transaction(db):
        moved = (
            db.query(Appointment)
            .filter(Appointment.id == appointment.id, Appointment.status.in_(sources))
            .update({Appointment.status: new_status}, synchronize_session=False)
        )
        if moved != 1:
            raise BusinessError.conflict(f"Appointment is no longer {' or '.join(sources)}")
        if new_status == "cancelled":
            db.query(Slot).filter(Slot.id == appointment.slot_id).update(
                {Slot.is_available: True}, synchronize_session=False
            )

    db.refresh(appointment)
    return appointment


def cancel_appointment(db: Session, patient: User, appointment_id: int) -> Appointment:
    """Owning patient cancels; the slot becomes bookable again."""
    appointment = _get_appointment(db, appointment_id)
    if appointment.patient_id != patient.id:
        raise BusinessError.forbidden(f"patient {patient.id} cancelling appointment {appointment_id}")
    return _apply_status(db, appointment, "cancelled")


def update_status(db: Session, actor: User, appointment_id: int, new_status: str) -> Appointment:
    """Doctor (own appointments only) or receptionist moves a scheduled appointment on."""
    appointment = _get_appointment(db, appointment_id)
    if actor.role == "doctor" and appointment.doctor_id != actor.id:
        raise BusinessError.forbidden(f"doctor {actor.id} updating appointment {appointment_id}")
    return _apply_status(db, appointment, new_status)


def _listing(db: Session):
    patient = aliased(User)
    doctor = aliased(User)
    q = (
        db.query(Appointment, patient, doctor)
        .join(patient, Appointment.patient_id == patient.id)
        .join(doctor, Appointment.doctor_id == doctor.id)
    )
    return q


def _record(appointment: Appointment, patient: User, doctor: User) -> dict:
    return {
        "id": appointment.id,
        "patient_id": appointment.patient_id,
        "doctor_id": appointment.doctor_id,
        "slot_id": appointment.slot_id,
        "date": appointment.date,
        "time": appointment.time,
        "status": appointment.status,
        "patient_name": patient.name,
        "patient_email": patient.email,
        "batch": patient.batch,
        "branch": patient.branch,
        "doctor_name": doctor.name,
        "doctor_email": doctor.email,
    }


def list_for_patient(db: Session, patient_id: int) -> List[dict]:
    rows = (
        _listing(db)
        .filter(Appointment.patient_id == patient_id, Appointment.status != "cancelled")
        .order_by(Appointment.date, Appointment.time)
        .all()
    )
    return [_record(*row) for row in rows]


def list_for_doctor(db: Session, doctor_id: int) -> List[dict]:
    rows = (
        _listing(db)
        .filter(Appointment.doctor_id == doctor_id, Appointment.status != "cancelled")
        .order_by(Appointment.date, Appointment.time)
        .all()
    )
    return [_record(*row) for row in rows]


def list_all(db: Session) -> List[dict]:
    """Receptionist view, cancelled rows included."""
    rows = _listing(db).order_by(Appointment.date, Appointment.time).all()
    return [_record(*row) for row in rows]
