from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, field_validator

Role = Literal["student", "doctor", "receptionist", "drugstore_manager"]


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: Role
    phone: Optional[str] = None
    batch: Optional[str] = None
    branch: Optional[str] = None
    roll_number: Optional[str] = None
    specialization: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    """Fields a receptionist may change. Role and email are fixed."""
    name: Optional[str] = None
    phone: Optional[str] = None
    batch: Optional[str] = None
    branch: Optional[str] = None
    roll_number: Optional[str] = None
    specialization: Optional[str] = None


class PasswordChange(BaseModel):
    password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    batch: Optional[str] = None
    branch: Optional[str] = None
    roll_number: Optional[str] = None
    specialization: Optional[str] = None

    class Config:
        from_attributes = True


class DoctorResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    specialization: Optional[str] = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse
