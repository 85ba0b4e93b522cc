"""Drug inventory CRUD. Stock is only decremented by dispensing_service."""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from hcc.core.exceptions import BusinessError
from hcc.db.session import transaction
from hcc.models.drug import Drug
from hcc.models.prescription import Prescription, PrescriptionDrug
from hcc.models.user import User

logger = logging.getLogger(__name__)


def list_drugs(db: Session) -> List[Drug]:
    return db.query(Drug).order_by(Drug.name).all()


def get_drug(db: Session, drug_id: int) -> Drug:
    drug = db.get(Drug, drug_id)
    if not drug:
        raise BusinessError.not_found("Drug", reason=f"id={drug_id}")
    return drug


def create_drug(
    db: Session,
    name: str,
    quantity: int,
    price: Decimal = Decimal("0"),
    description: Optional[str] = None,
) -> Drug:
    if not name.strip():
        raise BusinessError.bad_request("Drug name is required")

    drug = Drug(name=name.strip(), description=description, quantity=quantity, price=price)
    with transaction(db):
        db.add(drug)
    db.refresh(drug)
    return drug


def update_drug(
    db: Session,
    drug_id: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
    quantity: Optional[int] = None,
    price: Optional[Decimal] = None,
) -> Drug:
    """
    Whitelisted update: one named parameter per updatable column.

    ``quantity`` sets the stock count seen by the caller. It only applies if
    stock has not moved since the row was loaded; a dispense in between
    raises Conflict instead of being overwritten.
    """
    if name is None and description is None and quantity is None and price is None:
        raise BusinessError.bad_request("No valid fields to update")

    drug = get_drug(db, drug_id)
    loaded_quantity = drug.quantity

    with transaction(db):
        if quantity is not None:
            stocked = (
                db.query(Drug)
                .filter(Drug.id == drug_id, Drug.quantity == loaded_quantity)
                .update({Drug.quantity: quantity}, synchronize_session=False)
            )
            if stocked != 1:
                raise BusinessError.conflict("Stock changed since it was read; reload and retry")
        if name is not None:
            if not name.strip():
                raise BusinessError.bad_request("Drug name cannot be empty")
            drug.name = name.strip()
        if description is not None:
            drug.description = description
        if price is not None:
            drug.price = price

    db.refresh(drug)
    return drug


def delete_drug(db: Session, drug_id: int) -> None:
    drug = get_drug(db, drug_id)

    referenced = db.query(PrescriptionDrug.id).filter(PrescriptionDrug.drug_id == drug_id).first()
    if referenced:
        raise BusinessError.conflict("Drug is referenced by prescriptions and cannot be deleted")

    with transaction(db):
        db.delete(drug)


def low_stock(db: Session, threshold: int) -> List[Drug]:
    return (
        db.query(Drug)
        .filter(Drug.quantity < threshold)
        .order_by(Drug.quantity.asc(), Drug.name)
        .all()
    )


def recent_prescription_lines(db: Session, limit: int = 50) -> List[dict]:
    rows = (
        db.query(PrescriptionDrug, Prescription, Drug, User)
        .join(Prescription, PrescriptionDrug.prescription_id == Prescription.id)
        .join(Drug, PrescriptionDrug.drug_id == Drug.id)
        .join(User, Prescription.patient_id == User.id)
        .order_by(Prescription.date.desc(), PrescriptionDrug.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "prescription_drug_id": line.id,
            "prescription_id": p.id,
            "date": p.date,
            "status": p.status,
            "patient_name": patient.name,
            "drug_name": drug.name,
            "quantity": line.quantity,
            "morning": line.morning,
            "noon": line.noon,
            "evening": line.evening,
            "night": line.night,
            "notes": line.notes,
            "is_sold": line.is_sold,
        }
        for line, p, drug, patient in rows
    ]

