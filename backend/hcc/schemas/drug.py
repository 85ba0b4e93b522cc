from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class DrugCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    quantity: int = Field(ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)


class DrugUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)


class DrugResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    quantity: int
    price: float

    @field_validator("price", mode="before")
    @classmethod
    def price_as_float(cls, v):
        return float(v) if v is not None else 0.0

    class Config:
        from_attributes = True
