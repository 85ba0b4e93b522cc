from sqlalchemy import Column, Integer, ForeignKey, Date, Time, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hcc.db.base import Base


class Slot(Base):
    """A bookable (date, time) unit offered by one doctor."""
    __tablename__ = "slots"
    __table_args__ = (UniqueConstraint("doctor_id", "date", "time", name="uq_slots_doctor_date_time"),)

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    doctor = relationship("User")
