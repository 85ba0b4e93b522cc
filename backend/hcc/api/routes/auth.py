"""Auth: register, login, current profile.

SECURITY FEATURES:
- Password hashing with bcrypt
- Password policy from settings
- 24h bearer tokens carrying user id and role
- Generic error message on bad credentials
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hcc.api.deps import get_current_user, get_db
from hcc.core.audit import AuditLog
from hcc.core.config import settings
from hcc.core.exceptions import BusinessError
from hcc.core.security import create_access_token, get_password_hash, verify_password
from hcc.db.session import transaction
from hcc.models.user import User
from hcc.schemas.user import AuthResponse, UserCreate, UserLogin, UserResponse

router = APIRouter()


def check_password_policy(password: str) -> None:
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise BusinessError.bad_request(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
        )
    if settings.REQUIRE_NUMBERS and not any(c.isdigit() for c in password):
        raise BusinessError.bad_request("Password must contain at least one number")


def create_user(db: Session, data: UserCreate) -> User:
    """Shared by self-registration and receptionist user creation."""
    check_password_policy(data.password)

    if db.query(User).filter(User.email == data.email).first():
        raise BusinessError.bad_request("User already exists")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=get_password_hash(data.password),
        role=data.role,
        phone=data.phone,
        batch=data.batch,
        branch=data.branch,
        roll_number=data.roll_number,
        specialization=data.specialization or ("General Medicine" if data.role == "doctor" else None),
    )
    try:
        with transaction(db):
            db.add(user)
    except IntegrityError:
        # Lost a race on the unique email
        raise BusinessError.bad_request("User already exists")
    db.refresh(user)
    return user


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: UserCreate, request: Request, db: Session = Depends(get_db)):
    """Create an account and return a token for it."""
    if data.role not in settings.SELF_REGISTRATION_ROLES:
        AuditLog.log_authentication("register", data.email, _client_ip(request), False, reason=f"role {data.role}")
        raise BusinessError.forbidden(
            f"self-registration as {data.role}",
            message="This role can only be created by a receptionist",
        )

    user = create_user(db, data)
    AuditLog.log_authentication("register", user.email, _client_ip(request), True)
    return AuthResponse(token=create_access_token(user.id, user.role), user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
def login(data: UserLogin, request: Request, db: Session = Depends(get_db)):
    """
    Verify credentials and issue a token.

    Generic error: don't specify which field is wrong.
    """
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password(data.password, user.password_hash):
        AuditLog.log_authentication("login", data.email, _client_ip(request), False, reason="bad credentials")
        raise BusinessError.unauthorized(f"failed login for {data.email}", message="Invalid credentials")

    AuditLog.log_authentication("login", user.email, _client_ip(request), True)
    return AuthResponse(token=create_access_token(user.id, user.role), user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return current_user
