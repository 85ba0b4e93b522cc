from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, CheckConstraint
from sqlalchemy.sql import func
from hcc.db.base import Base


class Drug(Base):
    """
    Drugstore inventory.

    quantity is the only stock signal and only the dispensing workflow
    decrements it; the CHECK keeps it from ever going negative.
    """
    __tablename__ = "drugs"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_drugs_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_drugs_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
