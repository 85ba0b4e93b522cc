from sqlalchemy import (
    Column, Integer, String, ForeignKey, Date, Boolean, DateTime, Text, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hcc.db.base import Base

PRESCRIPTION_STATUSES = ("pending", "dispensed", "rejected")


class Prescription(Base):
    __tablename__ = "prescriptions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'dispensed', 'rejected')",
            name="ck_prescriptions_status",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="pending")  # pending, dispensed, rejected
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    patient = relationship("User", foreign_keys=[patient_id])
    lines = relationship(
        "PrescriptionDrug",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionDrug.id",
    )


class PrescriptionDrug(Base):
    """One line item: drug, quantity, dosing times and its own sold flag."""
    __tablename__ = "prescription_drugs"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_prescription_drugs_quantity_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(
        Integer, ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    drug_id = Column(Integer, ForeignKey("drugs.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    morning = Column(Boolean, nullable=False, default=False)
    noon = Column(Boolean, nullable=False, default=False)
    evening = Column(Boolean, nullable=False, default=False)
    night = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    is_sold = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    prescription = relationship("Prescription", back_populates="lines")
    drug = relationship("Drug")
