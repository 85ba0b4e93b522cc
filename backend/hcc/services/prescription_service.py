"""Prescription creation and read paths.

A prescription header and all of its line items are written in one
transaction; any failing line rolls the whole prescription back.

Listings fetch headers first, then every line for that header-id set in a
single query, and group the lines in memory.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from hcc.core.exceptions import BusinessError
from hcc.db.session import transaction
from hcc.models.drug import Drug
from hcc.models.prescription import Prescription, PrescriptionDrug
from hcc.models.user import User
from hcc.schemas.prescription import PrescriptionLineCreate

logger = logging.getLogger(__name__)


def create_prescription(
    db: Session,
    doctor: User,
    patient_id: int,
    lines: List[PrescriptionLineCreate],
    notes: Optional[str] = None,
) -> Prescription:
    if not lines:
        raise BusinessError.bad_request("At least one drug is required")

    patient = db.query(User).filter(User.id == patient_id, User.role == "student").first()
    if not patient:
        raise BusinessError.not_found("Patient", reason=f"id={patient_id}")

    logger.info(f"Creating prescription: doctor={doctor.id}, patient={patient_id}, drugs={len(lines)}")

    try:
        with transaction(db):
            prescription = Prescription(
                doctor_id=doctor.id,
                patient_id=patient_id,
                date=date.today(),
                notes=notes,
                status="pending",
            )
            db.add(prescription)
            db.flush()

            for line in lines:
                db.add(
                    PrescriptionDrug(
                        prescription_id=prescription.id,
                        drug_id=line.drug_id,
                        quantity=line.quantity,
                        morning=line.morning,
                        noon=line.noon,
                        evening=line.evening,
                        night=line.night,
                        notes=line.notes or "",
                        is_sold=False,
                    )
                )
                db.flush()
    except IntegrityError as e:
        logger.warning(f"Prescription for patient {patient_id} rolled back: {e.orig}")
        raise BusinessError.bad_request("Prescription references an unknown drug")

    db.refresh(prescription)
    return prescription


def _line_record(line: PrescriptionDrug, drug: Drug) -> dict:
    return {
        "id": line.id,
        "prescription_id": line.prescription_id,
        "drug_id": line.drug_id,
        "drug_name": drug.name,
        "drug_description": drug.description,
        "quantity": line.quantity,
        "morning": line.morning,
        "noon": line.noon,
        "evening": line.evening,
        "night": line.night,
        "notes": line.notes,
        "is_sold": line.is_sold,
    }


def lines_by_prescription(db: Session, prescription_ids: Iterable[int]) -> Dict[int, List[dict]]:
    """One query for every line of every header in the set, grouped by header id."""
    ids = list(prescription_ids)
    grouped: Dict[int, List[dict]] = defaultdict(list)
    if not ids:
        return grouped

    rows = (
        db.query(PrescriptionDrug, Drug)
        .join(Drug, PrescriptionDrug.drug_id == Drug.id)
        .filter(PrescriptionDrug.prescription_id.in_(ids))
        .order_by(PrescriptionDrug.id)
        .all()
    )
    for line, drug in rows:
        grouped[line.prescription_id].append(_line_record(line, drug))
    return grouped


def _headers(db: Session):
    doctor = aliased(User)
    patient = aliased(User)
    return (
        db.query(Prescription, doctor.name, patient.name)
        .join(doctor, Prescription.doctor_id == doctor.id)
        .join(patient, Prescription.patient_id == patient.id)
    )


def _with_lines(db: Session, rows) -> List[dict]:
    grouped = lines_by_prescription(db, [p.id for p, _, _ in rows])
    return [
        {
            "id": p.id,
            "doctor_id": p.doctor_id,
            "patient_id": p.patient_id,
            "date": p.date,
            "notes": p.notes,
            "status": p.status,
            "doctor_name": doctor_name,
            "patient_name": patient_name,
            "drugs": grouped.get(p.id, []),
        }
        for p, doctor_name, patient_name in rows
    ]


def list_for_patient(db: Session, patient_id: int) -> List[dict]:
    rows = (
        _headers(db)
        .filter(Prescription.patient_id == patient_id)
        .order_by(Prescription.date.desc(), Prescription.id.desc())
        .all()
    )
    return _with_lines(db, rows)


def list_for_doctor(db: Session, doctor_id: int) -> List[dict]:
    rows = (
        _headers(db)
        .filter(Prescription.doctor_id == doctor_id)
        .order_by(Prescription.date.desc(), Prescription.id.desc())
        .all()
    )
    return _with_lines(db, rows)


def get_prescription_detail(db: Session, prescription_id: int) -> dict:
    row = _headers(db).filter(Prescription.id == prescription_id).first()
    if not row:
        raise BusinessError.not_found("Prescription", reason=f"id={prescription_id}")
    return _with_lines(db, [row])[0]


def pending_lines(db: Session) -> List[dict]:
    """Unsold lines of pending prescriptions, newest first, for the drugstore queue."""
    doctor = aliased(User)
    patient = aliased(User)
    rows = (
        db.query(PrescriptionDrug, Prescription, Drug, patient, doctor)
        .join(Prescription, PrescriptionDrug.prescription_id == Prescription.id)
        .join(Drug, PrescriptionDrug.drug_id == Drug.id)
        .join(patient, Prescription.patient_id == patient.id)
        .join(doctor, Prescription.doctor_id == doctor.id)
        .filter(PrescriptionDrug.is_sold.is_(False), Prescription.status == "pending")
        .order_by(Prescription.date.desc(), Prescription.id.desc(), PrescriptionDrug.id)
        .all()
    )
    return [
        {
            "prescription_drug_id": line.id,
            "prescription_id": p.id,
            "date": p.date,
            "patient_id": pat.id,
            "patient_name": pat.name,
            "doctor_name": doc.name,
            "drug_id": drug.id,
            "drug_name": drug.name,
            "quantity": line.quantity,
            "stock": drug.quantity,
            "morning": line.morning,
            "noon": line.noon,
            "evening": line.evening,
            "night": line.night,
            "notes": line.notes,
            "is_sold": line.is_sold,
        }
        for line, p, drug, pat, doc in rows
    ]
