"""FastAPI dependencies: DB session, current user from JWT, role guard.

The role check only exists as ``require_roles``, which resolves the caller's
identity first. There is no role check that can run without authentication.
"""
from typing import Callable, Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from hcc.core.audit import AuditLog
from hcc.core.exceptions import BusinessError
from hcc.core.security import decode_access_token
from hcc.models.user import ROLES, User

security = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Get a session from the app's storage handle."""
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to a user.

    401 when the header is missing or malformed, when the token fails
    verification (including expiry), or when the user no longer exists.
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise BusinessError.unauthorized("missing bearer token")

    payload = decode_access_token(credentials.credentials)

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise BusinessError.invalid_token("non-integer subject")

    user = db.get(User, user_id)
    if not user:
        raise BusinessError.unauthorized(f"token for missing user {user_id}", message="User not found")
    return user


def require_roles(*roles: str) -> Callable[..., User]:
    """
    Combined guard: authenticate, then check role membership.

    Usage:
        @router.post("", dependencies=[Depends(require_roles("doctor"))])
        def create(..., current_user: User = Depends(require_roles("doctor"))): ...
    """
    unknown = set(roles) - set(ROLES)
    if not roles or unknown:
        raise ValueError(f"require_roles needs known roles, got {roles!r}")
    allowed = frozenset(roles)

    def guard(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            AuditLog.log_access_denied(
                "call", "endpoint", None, current_user.id,
                f"role {current_user.role} not in {sorted(allowed)}",
            )
            raise BusinessError.forbidden(f"user {current_user.id} role {current_user.role}")
        return current_user

    return guard


def resolve_self_id(path_id: str, current_user: User) -> int:
    """Path ids accept the literal ``me`` for the caller's own id."""
    if path_id == "me":
        return current_user.id
    try:
        return int(path_id)
    except ValueError:
        raise BusinessError.bad_request("Invalid id")


def ensure_self(target_id: int, current_user: User, resource_type: str) -> None:
    """Ownership check layered on top of the role guard."""
    if current_user.id != target_id:
        AuditLog.log_access_denied("read", resource_type, target_id, current_user.id, "not owner")
        raise BusinessError.forbidden(f"user {current_user.id} reading {resource_type} of {target_id}")
