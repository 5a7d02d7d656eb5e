# app/core/auth.py
import uuid
from typing import Any, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlmodel import Session

from app.core.config import get_settings
from app.database import get_session
from app.models.user import User

# auto_error=False: a missing header is handled by require_auth with our own 401.
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry of a bearer JWT and return its claims.

    The audience is not checked; tokens come from several client apps.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")


def identity_from_claims(claims: dict[str, Any]) -> tuple[uuid.UUID, str]:
    """
    Extract (user id, email) from token claims.

    `sub` must be a UUID; it is the primary key of the mirrored users row.
    """
    sub = claims.get("sub")
    email = claims.get("email")
    if not sub or not email:
        raise _unauthorized("Token missing sub/email")
    try:
        return uuid.UUID(sub), email
    except ValueError:
        raise _unauthorized("Invalid sub in token")


def _provision_user(session: Session, user_id: uuid.UUID, email: str) -> User:
    # New accounts are customers; admins are promoted by hand.
    user = User(id=user_id, email=email, name=email.split("@", 1)[0], role="user")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the caller from the Authorization header.

    No header means an anonymous caller (None). A valid token for an
    unknown id creates the users row on the fly.
    """
    if credentials is None:
        return None

    user_id, email = identity_from_claims(decode_access_token(credentials.credentials))
    user = session.get(User, user_id)
    if user is None:
        user = _provision_user(session, user_id, email)
    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise _unauthorized("Authentication required")
    return user


def require_role(role: str, detail: str) -> Callable[..., User]:
    """
    Build a dependency that admits only users with the given role.
    """

    def dependency(user: User = Depends(require_auth)) -> User:
        if user.role != role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return dependency


# Order administration routes.
require_admin = require_role("admin", "Admin access required")

# Cart, checkout and payment routes; admins are rejected.
require_user = require_role("user", "Customer access required")
