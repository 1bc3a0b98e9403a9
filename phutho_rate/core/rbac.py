from fastapi import Depends, HTTPException, status

from phutho_rate.core.security import get_current_user
from phutho_rate.models.user import User


def has_role(user: User, *roles: str) -> bool:
    return user.role in roles


def require_roles(*required: str):
    """
    Usage:
      Depends(require_roles("ADMIN"))
      Depends(require_roles("ADMIN", "LEADER"))  # any-of
    """
    required_set = set(required)

    def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in required_set:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden. Requires one of: {sorted(required_set)}",
            )
        return user

    return _dep
