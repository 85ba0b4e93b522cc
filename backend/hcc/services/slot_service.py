"""Doctor slot ledger: batch creation, availability toggling, listing."""
import logging
from datetime import date, time
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hcc.core.exceptions import BusinessError
from hcc.db.session import transaction
from hcc.models.appointment import Appointment
from hcc.models.slot import Slot
from hcc.models.user import User

logger = logging.getLogger(__name__)


def get_doctor(db: Session, doctor_id: int) -> User:
    doctor = db.query(User).filter(User.id == doctor_id, User.role == "doctor").first()
    if not doctor:
        raise BusinessError.not_found("Doctor", reason=f"id={doctor_id}")
    return doctor


def list_doctors(db: Session) -> List[User]:
    return db.query(User).filter(User.role == "doctor").order_by(User.name).all()


def create_slots(db: Session, doctor_id: int, slot_date: date, times: List[time]) -> List[Slot]:
    """
    Insert a batch of slots for one doctor and date.

    The batch is all-or-nothing: a time that already exists for the doctor
    on that date fails the whole request.
    """
    if not times:
        raise BusinessError.bad_request("At least one slot time is required")
    if len(set(times)) != len(times):
        raise BusinessError.bad_request("Duplicate slot times in request")

    get_doctor(db, doctor_id)

    slots = [Slot(doctor_id=doctor_id, date=slot_date, time=t, is_available=True) for t in sorted(times)]
    try:
        with transaction(db):
            db.add_all(slots)
            db.flush()
    except IntegrityError:
        raise BusinessError.conflict("One or more slots already exist for this doctor and date")

    for s in slots:
        db.refresh(s)
    logger.info(f"Created {len(slots)} slots for doctor {doctor_id} on {slot_date}")
    return slots


def get_slot(db: Session, slot_id: int) -> Slot:
    slot = db.get(Slot, slot_id)
    if not slot:
        raise BusinessError.not_found("Slot", reason=f"id={slot_id}")
    return slot


def set_availability(db: Session, actor: User, slot_id: int, is_available: bool) -> Slot:
    """Doctors toggle their own slots; receptionists any slot."""
    slot = get_slot(db, slot_id)

    if actor.role == "doctor" and slot.doctor_id != actor.id:
        raise BusinessError.forbidden(f"doctor {actor.id} toggling slot {slot_id} of {slot.doctor_id}")

    with transaction(db):
        db.query(Slot).filter(Slot.id == slot_id).update(
            {Slot.is_available: is_available}, synchronize_session=False
        )
        # runs under the slot row lock taken by the UPDATE
        if is_available:
            booked = (
                db.query(Appointment.id)
                .filter(Appointment.slot_id == slot_id, Appointment.status != "cancelled")
                .first()
            )
            if booked:
                raise BusinessError.conflict("Slot has an active appointment")

    db.refresh(slot)
    return slot


def list_slots(db: Session, doctor_id: int, slot_date: date) -> List[Slot]:
    return (
        db.query(Slot)
        .filter(Slot.doctor_id == doctor_id, Slot.date == slot_date)
        .order_by(Slot.time)
        .all()
    )
