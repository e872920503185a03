# store_api/core/auth.py
import logging
import uuid
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session, select

from store_api.core.config import get_settings
from store_api.database import get_session
from store_api.models.user import User
from store_api.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

settings = get_settings()
users = UserRepository()

# auto_error=False: the catalog is public, so a missing header is not an error
# until a route asks for require_auth / require_admin / require_user.
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify a Supabase access token and return its claims.

    Signature and `exp` are checked; `aud` is not (Supabase sets it to
    "authenticated" or a custom value depending on the project).
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")


def _profile_from_claims(user_id: uuid.UUID, email: str, claims: dict[str, Any]) -> User:
    """
    Build the first profile row for a token we have not seen before.

    Sign-up forms may put `full_name` / `student_id` in user_metadata;
    otherwise the name is the local part of the email. Everyone starts
    as a customer; staff are promoted through PATCH /users/{id}/role.
    """
    metadata = claims.get("user_metadata") or {}
    name = metadata.get("full_name") or metadata.get("name") or email.split("@", 1)[0]
    student_id = metadata.get("student_id") or None
    return User(
        id=user_id,
        email=email,
        name=str(name)[:100],
        student_id=str(student_id)[:30] if student_id else None,
        role="user",
    )


def user_from_token(session: Session, token: str) -> User:
    """
    Load the profile for a raw access token, creating it on first use.

    Used by the HTTP dependencies below and by the Socket.IO handshake,
    which reads the token from the auth payload or the query string.
    """
    claims = decode_access_token(token)
    sub, email = claims.get("sub"), claims.get("email")
    if not sub or not email:
        raise _unauthorized("Token missing sub/email")

    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise _unauthorized("Invalid sub in token")

    user = session.exec(select(User).where(User.id == user_id)).first()
    if user is None:
        user = _profile_from_claims(user_id, email, claims)
        if user.student_id and users.get_by_student_id(session, user.student_id):
            logger.warning(
                "Sign-up student ID %s for %s is already taken; leaving it blank",
                user.student_id,
                user_id,
            )
            user.student_id = None
        session.add(user)
        session.commit()
        session.refresh(user)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """None for anonymous visitors, else the caller's profile."""
    if credentials is None:
        return None
    return user_from_token(session, credentials.credentials)


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise _unauthorized("Authentication required")
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """
    Store staff only: inventory, order processing, payments, dashboards.
    """
    if user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_user(user: User = Depends(require_auth)) -> User:
    """
    Students / customers only (cart, checkout, GCash selection).

    Admins get 403 so staff accounts never place orders by accident.
    """
    if user.role != "user":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer access required",
        )
    return user
