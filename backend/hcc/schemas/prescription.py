from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field


class PrescriptionLineCreate(BaseModel):
    drug_id: int
    quantity: int = Field(ge=1)
    morning: bool
    noon: bool
    evening: bool
    night: bool
    notes: Optional[str] = None


class PrescriptionCreate(BaseModel):
    patient_id: int
    notes: Optional[str] = None
    drugs: List[PrescriptionLineCreate] = Field(min_length=1)


class PrescriptionLineResponse(BaseModel):
    id: int
    prescription_id: int
    drug_id: int
    drug_name: Optional[str] = None
    drug_description: Optional[str] = None
    quantity: int
    morning: bool
    noon: bool
    evening: bool
    night: bool
    notes: Optional[str] = None
    is_sold: bool


class PrescriptionResponse(BaseModel):
    id: int
    doctor_id: int
    patient_id: int
    date: date
    notes: Optional[str] = None
    status: str
    doctor_name: Optional[str] = None
    patient_name: Optional[str] = None
    drugs: List[PrescriptionLineResponse] = []


class PendingLineRecord(BaseModel):
    """Flat row for the drugstore's pending queue."""
    prescription_drug_id: int
    prescription_id: int
    date: date
    patient_id: int
    patient_name: str
    doctor_name: str
    drug_id: int
    drug_name: str
    quantity: int
    stock: int
    morning: bool
    noon: bool
    evening: bool
    night: bool
    notes: Optional[str] = None
    is_sold: bool


class DispenseResponse(BaseModel):
    message: str
    prescription_drug_id: int
    prescription_id: int
    prescription_status: str
    drug_id: int
    remaining_quantity: int


class RecentLineRecord(BaseModel):
    """Flat row for the drugstore's recent-prescriptions report."""
    prescription_drug_id: int
    prescription_id: int
    date: date
    status: str
    patient_name: str
    drug_name: str
    quantity: int
    morning: bool
    noon: bool
    evening: bool
    night: bool
    notes: Optional[str] = None
    is_sold: bool
