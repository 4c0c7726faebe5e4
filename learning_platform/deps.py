"""Shared FastAPI dependencies for database access and authentication."""

import logging
from typing import Optional

from fastapi import Depends, Request
from sqlmodel import Session

from learning_platform import firebase
from learning_platform.database import get_session
from learning_platform.errors import Forbidden, Unauthenticated
from learning_platform.models import User, as_utc, utcnow

logger = logging.getLogger(__name__)

VALID_ROLES = ("student", "teacher")


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header, if any."""
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def _sync_user(session: Session, claims: dict) -> User:
    """Get or create the local user row for verified token claims and stamp the login."""
    uid = claims["uid"]
    now = utcnow()
    user = session.get(User, uid)
    if user is None:
        # New accounts always start as students; teachers are promoted explicitly
        user = User(
            uid=uid,
            email=claims.get("email"),
            display_name=claims.get("name"),
            avatar=claims.get("picture"),
            role="student",
        )
        logger.info(f"Created local profile for new user {uid}")
    elif claims.get("email") and user.email != claims.get("email"):
        user.email = claims.get("email")

    if user.last_login_at is None or as_utc(user.last_login_at).date() != now.date():
        user.total_login_days += 1
    user.last_login_at = now
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def get_current_user(request: Request, session: Session = Depends(get_session)) -> User:
    """Resolve the bearer token to a user, or fail with 401/403."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if not token:
        raise Unauthenticated("Access token required")

    try:
        claims = firebase.verify_id_token(token)
    except (firebase.FirebaseError, ValueError) as e:
        logger.warning(f"Authentication error: {e}")
        raise Unauthenticated("Invalid or expired token", status_code=403)

    if not claims.get("uid"):
        raise Unauthenticated("Invalid or expired token", status_code=403)

    return _sync_user(session, claims)


def require_role(required_role: str):
    """Dependency factory that enforces the given role."""

    def wrapper(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != required_role:
            raise Forbidden(f"Access denied. Required role: {required_role}")
        return current_user

    return wrapper


require_teacher = require_role("teacher")
