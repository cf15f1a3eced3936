"""
Request identity.

Authentication happens upstream (API gateway / auth service); it forwards the
authenticated user's id in the ``X-User-Id`` header. These dependencies turn
that id into an active ``User`` and enforce the admin role.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db
from models import User

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


def _resolve_user(db: Session, raw_user_id: str) -> User:
    try:
        user_id = int(raw_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user identity")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        logger.warning("Rejected request for unknown or inactive user", extra={"user_id": user_id})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    return user


def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> User:
    """Require an authenticated, active user."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return _resolve_user(db, x_user_id)


def get_optional_user(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Return the caller when identified, None for anonymous requests."""
    if not x_user_id:
        return None
    return _resolve_user(db, x_user_id)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
