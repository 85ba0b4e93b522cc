"""Drug inventory CRUD and line-item dispensing."""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hcc.api.deps import get_current_user, get_db, require_roles
from hcc.core.audit import AuditLog
from hcc.models.user import User
from hcc.schemas.drug import DrugCreate, DrugResponse, DrugUpdate
from hcc.schemas.prescription import DispenseResponse, RecentLineRecord
from hcc.services import dispensing_service, inventory_service

router = APIRouter()

drugstore = require_roles("drugstore_manager")


@router.get("", response_model=List[DrugResponse])
def list_drugs(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return inventory_service.list_drugs(db)


@router.post("", response_model=DrugResponse, status_code=status.HTTP_201_CREATED)
def create_drug(data: DrugCreate, db: Session = Depends(get_db), current_user: User = Depends(drugstore)):
    drug = inventory_service.create_drug(
        db, name=data.name, quantity=data.quantity, price=data.price, description=data.description
    )
    AuditLog.log_action("create", "drug", drug.id, current_user, changes={"quantity": drug.quantity})
    return drug


# ==============================================================================
# REPORTING (declared before /{drug_id} routes)
# ==============================================================================

@router.get("/recent-prescriptions", response_model=List[RecentLineRecord])
def recent_prescriptions(db: Session = Depends(get_db), current_user: User = Depends(drugstore)):
    """Latest 50 prescription lines, sold or not."""
    return inventory_service.recent_prescription_lines(db)


@router.get("/low-stock", response_model=List[DrugResponse])
def low_stock(
    threshold: int = Query(20, ge=0, description="Stock threshold for low stock alert"),
    db: Session = Depends(get_db),
    current_user: User = Depends(drugstore),
):
    return inventory_service.low_stock(db, threshold)


# ==============================================================================
# DISPENSING
# ==============================================================================

@router.patch("/prescription-drugs/{line_id}/sold", response_model=DispenseResponse)
def mark_sold(line_id: int, db: Session = Depends(get_db), current_user: User = Depends(drugstore)):
    """Dispense one line item: mark it sold and take its quantity out of stock."""
    result = dispensing_service.dispense_line(db, current_user, line_id)
    AuditLog.log_action(
        "dispense", "prescription_drug", line_id, current_user,
        changes={"drug_id": result["drug_id"], "remaining_quantity": result["remaining_quantity"]},
    )
    return result


# ==============================================================================
# SINGLE DRUG
# ==============================================================================

@router.patch("/{drug_id}", response_model=DrugResponse)
def update_drug(
    drug_id: int,
    data: DrugUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(drugstore),
):
    drug = inventory_service.update_drug(
        db,
        drug_id,
        name=data.name,
        description=data.description,
        quantity=data.quantity,
        price=data.price,
    )
    AuditLog.log_action("update", "drug", drug_id, current_user, changes=data.model_dump(exclude_none=True))
    return drug


@router.delete("/{drug_id}")
def delete_drug(drug_id: int, db: Session = Depends(get_db), current_user: User = Depends(drugstore)):
    inventory_service.delete_drug(db, drug_id)
    AuditLog.log_action("delete", "drug", drug_id, current_user)
    return {"message": "Drug deleted successfully", "id": drug_id}
