"""User administration, mostly for receptionists."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hcc.api.deps import ensure_self, get_current_user, get_db, require_roles
from hcc.api.routes.auth import check_password_policy, create_user
from hcc.core.audit import AuditLog
from hcc.core.exceptions import BusinessError
from hcc.core.security import get_password_hash
from hcc.db.session import transaction
from hcc.models.appointment import Appointment
from hcc.models.prescription import Prescription
from hcc.models.user import ROLES, User
from hcc.schemas.user import PasswordChange, UserCreate, UserResponse, UserUpdate

router = APIRouter()

receptionist = require_roles("receptionist")


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise BusinessError.not_found("User", reason=f"id={user_id}")
    return user


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create(data: UserCreate, db: Session = Depends(get_db), current_user: User = Depends(receptionist)):
    user = create_user(db, data)
    AuditLog.log_action("create", "user", user.id, current_user, changes={"role": user.role})
    return user


@router.get("", response_model=List[UserResponse])
def list_users(
    role: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("receptionist", "doctor")),
):
    """Receptionists list anyone; doctors may only list students."""
    if current_user.role == "doctor" and role != "student":
        AuditLog.log_access_denied("read", "user", role, current_user.id, "doctor listing non-students")
        raise BusinessError.forbidden(
            f"doctor {current_user.id} listing role={role}",
            message="Access denied: doctors can only fetch student data",
        )
    if role is not None and role not in ROLES:
        raise BusinessError.bad_request("Invalid role")

    q = db.query(User)
    if role:
        q = q.filter(User.role == role)
    return q.order_by(User.name).all()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if current_user.role != "receptionist":
        ensure_self(user_id, current_user, "user")
    return _get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(receptionist),
):
    """Whitelisted profile update; role, email and password are not touched here."""
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise BusinessError.bad_request("No valid fields to update")

    user = _get_user(db, user_id)
    with transaction(db):
        if data.name is not None:
            if not data.name.strip():
                raise BusinessError.bad_request("Name cannot be empty")
            user.name = data.name.strip()
        if data.phone is not None:
            user.phone = data.phone
        if data.batch is not None:
            user.batch = data.batch
        if data.branch is not None:
            user.branch = data.branch
        if data.roll_number is not None:
            user.roll_number = data.roll_number
        if data.specialization is not None:
            user.specialization = data.specialization

    db.refresh(user)
    AuditLog.log_action("update", "user", user_id, current_user, changes=changes)
    return user


@router.patch("/{user_id}/password")
def change_password(
    user_id: int,
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role != "receptionist":
        ensure_self(user_id, current_user, "user")
    check_password_policy(data.password)

    user = _get_user(db, user_id)
    with transaction(db):
        user.password_hash = get_password_hash(data.password)

    AuditLog.log_action("update", "user_password", user_id, current_user)
    return {"message": "Password updated successfully"}


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(receptionist)):
    user = _get_user(db, user_id)
    if user.role == "receptionist":
        raise BusinessError.forbidden(
            f"receptionist {current_user.id} deleting receptionist {user_id}",
            message="Cannot delete receptionist users",
        )

    has_history = (
        db.query(Appointment.id)
        .filter((Appointment.patient_id == user_id) | (Appointment.doctor_id == user_id))
        .first()
        or db.query(Prescription.id)
        .filter((Prescription.patient_id == user_id) | (Prescription.doctor_id == user_id))
        .first()
    )
    if has_history:
        raise BusinessError.conflict("User has appointments or prescriptions and cannot be deleted")

    with transaction(db):
        db.delete(user)

    AuditLog.log_action("delete", "user", user_id, current_user)
    return {"message": "User deleted successfully"}
