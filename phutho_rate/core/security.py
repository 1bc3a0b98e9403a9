import logging

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from phutho_rate.db.session import get_db
from phutho_rate.models.user import User

logger = logging.getLogger(__name__)


def get_current_user(
    x_user_email: str | None = Header(default=None, description="Dev identity, e.g. admin@local.test"),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the X-User-Email header.

    There is no login flow: the header names an existing account and is
    matched case-insensitively. Deleted or deactivated accounts get 401.
    """
    if not x_user_email or not x_user_email.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Email header",
        )

    email = x_user_email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).one_or_none()
    if user is None or not user.is_active:
        logger.info("Rejected unknown or inactive account", extra={"email": email})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or deactivated account",
        )
    return user
