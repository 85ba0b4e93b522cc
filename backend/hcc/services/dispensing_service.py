"""Dispensing and rejection.

Dispensing one line item marks it sold and takes its quantity out of stock
in a single transaction. Both writes are conditional UPDATEs, so a second
dispense of the same line or a dispense against short stock changes
nothing. The header status is recomputed from its lines before commit:
once every line is sold the prescription becomes ``dispensed``.

Both paths open their transaction by updating the header row, which holds
its lock until commit, so dispenses and rejections of one prescription are
serialized. Rejection is refused once any line has been sold.
"""
import logging

from sqlalchemy.orm import Session

from hcc.core.exceptions import BusinessError
from hcc.db.session import transaction
from hcc.models.drug import Drug
from hcc.models.prescription import Prescription, PrescriptionDrug
from hcc.models.user import User

logger = logging.getLogger(__name__)


def _recompute_status(db: Session, prescription_id: int) -> str:
    """All lines sold -> dispensed. Must run inside the caller's transaction."""
    unsold = (
        db.query(PrescriptionDrug.id)
        .filter(PrescriptionDrug.prescription_id == prescription_id, PrescriptionDrug.is_sold.is_(False))
        .first()
    )
    if unsold is None:
        db.query(Prescription).filter(
            Prescription.id == prescription_id, Prescription.status == "pending"
        ).update({Prescription.status: "dispensed"}, synchronize_session=False)
    return db.query(Prescription.status).filter(Prescription.id == prescription_id).scalar()


def _lock_pending_header(db: Session, prescription_id: int) -> bool:
    """
    Take the header row lock with a no-op UPDATE guarded on ``pending``.

    Dispense and reject both start here, so per prescription they run one
    at a time and each sees the other's committed lines.
    """
    locked = (
        db.query(Prescription)
        .filter(Prescription.id == prescription_id, Prescription.status == "pending")
        .update({Prescription.status: Prescription.status}, synchronize_session=False)
    )
    return locked == 1


def dispense_line(db: Session, actor: User, line_id: int) -> dict:
    line = db.get(PrescriptionDrug, line_id)
    if not line:
        raise BusinessError.not_found("Prescription drug", reason=f"id={line_id}")
    if line.is_sold:
        raise BusinessError.already_processed("Drug already marked as sold")

    prescription = db.get(Prescription, line.prescription_id)
    if prescription.status != "pending":
        raise BusinessError.conflict(f"Prescription is {prescription.status}")

    quantity = line.quantity
    drug_id = line.drug_id
    prescription_id = line.prescription_id

    with transaction(db):
        if not _lock_pending_header(db, prescription_id):
            header_status = db.query(Prescription.status).filter(Prescription.id == prescription_id).scalar()
            raise BusinessError.conflict(f"Prescription is {header_status}")

        claimed = (
            db.query(PrescriptionDrug)
            .filter(PrescriptionDrug.id == line_id, PrescriptionDrug.is_sold.is_(False))
            .update({PrescriptionDrug.is_sold: True}, synchronize_session=False)
        )
        if claimed != 1:
            raise BusinessError.already_processed("Drug already marked as sold")

        decremented = (
            db.query(Drug)
            .filter(Drug.id == drug_id, Drug.quantity >= quantity)
            .update({Drug.quantity: Drug.quantity - quantity}, synchronize_session=False)
        )
        if decremented != 1:
            raise BusinessError.insufficient_stock(
                f"Insufficient stock for drug {drug_id}: {quantity} requested"
            )

        status = _recompute_status(db, prescription_id)
        remaining = db.query(Drug.quantity).filter(Drug.id == drug_id).scalar()

    logger.info(
        f"User {actor.id} dispensed line {line_id} ({quantity} x drug {drug_id}); "
        f"stock now {remaining}, prescription {prescription_id} {status}"
    )
    return {
        "message": "Drug marked as sold successfully",
        "prescription_drug_id": line_id,
        "prescription_id": prescription_id,
        "prescription_status": status,
        "drug_id": drug_id,
        "remaining_quantity": remaining,
    }


def reject_prescription(db: Session, actor: User, prescription_id: int) -> Prescription:
    prescription = db.get(Prescription, prescription_id)
    if not prescription:
        raise BusinessError.not_found("Prescription", reason=f"id={prescription_id}")
    if prescription.status != "pending":
        raise BusinessError.already_processed(f"Prescription is already {prescription.status}")

    with transaction(db):
        # the status UPDATE doubles as the header lock
        rejected = (
            db.query(Prescription)
            .filter(Prescription.id == prescription_id, Prescription.status == "pending")
            .update({Prescription.status: "rejected"}, synchronize_session=False)
        )
        if rejected != 1:
            raise BusinessError.already_processed("Prescription is no longer pending")

        sold = (
            db.query(PrescriptionDrug.id)
            .filter(PrescriptionDrug.prescription_id == prescription_id, PrescriptionDrug.is_sold.is_(True))
            .first()
        )
        if sold:
            raise BusinessError.conflict("Prescription has dispensed drugs and cannot be rejected")

    db.refresh(prescription)
    logger.info(f"User {actor.id} rejected prescription {prescription_id}")
    return prescription
