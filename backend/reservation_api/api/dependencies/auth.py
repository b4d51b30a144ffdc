"""Authentication dependencies."""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_principal
from ...core.config import settings
from ...models.user import User
from .database import get_db

logger = logging.getLogger(__name__)


def get_current_user(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the token's subject to an active user row.

    Raises:
        HTTPException: 401 if the user does not exist or is inactive
    """
    user = db.query(User).filter(User.id == principal.user_id).first()
    if user is None or not user.is_active:
        logger.warning("Token subject is not an active user", extra={"user_id": principal.user_id})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Require a user listed in ``ADMIN_EMAILS``.

    Raises:
        HTTPException: 403 for any other authenticated user
    """
    admins = {email.strip().lower() for email in settings.admin_emails}
    if current_user.email.lower() not in admins:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
