from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from hcc.db.base import Base

ROLES = ("student", "doctor", "receptionist", "drugstore_manager")


class User(Base):
    """
    Every account in the clinic.

    A user with role ``doctor`` is the doctor record itself: slots,
    appointments and prescriptions reference ``users.id`` directly.
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('student', 'doctor', 'receptionist', 'drugstore_manager')",
            name="ck_users_role",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False)
    phone = Column(String(64), nullable=True)
    batch = Column(String(64), nullable=True)
    branch = Column(String(128), nullable=True)
    roll_number = Column(String(64), nullable=True)
    specialization = Column(String(255), nullable=True)  # doctors only
    created_at = Column(DateTime(timezone=True), server_default=func.now())
