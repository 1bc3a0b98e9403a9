import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from phutho_rate.core.audit import log_event
from phutho_rate.core.rbac import has_role, require_roles
from phutho_rate.core.security import get_current_user
from phutho_rate.db.session import get_db
from phutho_rate.models.agency import Agency
from phutho_rate.models.user import User
from phutho_rate.schemas.pagination import PaginatedResponse, PaginationMeta
from phutho_rate.schemas.user import AvatarUpdate, RoleUpdate, UserOut
from phutho_rate.scoring.types import Role
from phutho_rate.services.snapshots import get_user_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def to_out(u: User) -> UserOut:
    return UserOut(
        id=str(u.id),
        name=u.name,
        email=u.email,
        avatar=u.avatar,
        role=u.role,
        agency_id=str(u.agency_id) if u.agency_id else None,
        department=u.department,
        position=u.position,
    )


@router.get("")
def list_users(
    agency_id: uuid.UUID | None = Query(default=None, description="Filter by agency"),
    role: Role | None = Query(default=None, description="Filter by role (ADMIN, LEADER, EMPLOYEE)"),
    search: str | None = Query(default=None, description="Search by name"),
    limit: int = Query(default=100, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles("ADMIN", "LEADER")),
):
    """
    List accounts with optional filtering.

    Use ?include_pagination=true to get pagination metadata.
    """
    query = db.query(User)

    if agency_id:
        query = query.filter(User.agency_id == agency_id)
    if role:
        query = query.filter(User.role == role.value)
    if search:
        query = query.filter(User.name.ilike(f"%{search}%"))

    total = query.count()

    users = query.order_by(User.name).offset(offset).limit(limit).all()
    items = [to_out(u) for u in users]

    if include_pagination:
        return PaginatedResponse[UserOut](
            items=items,
            pagination=PaginationMeta(
                total=total,
                limit=limit,
                offset=offset,
                has_more=(offset + len(items) < total),
            ),
        )
    return items


@router.patch("/{user_id}/role", response_model=UserOut)
def change_role(
    user_id: uuid.UUID,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
):
    u = get_user_or_404(db, user_id)

    if u.id == current_user.id and payload.role != Role.ADMIN:
        raise HTTPException(status_code=409, detail="You cannot remove your own admin role")

    prev = u.role
    u.role = payload.role.value

    log_event(
        db=db,
        actor=current_user,
        action="USER_ROLE_CHANGED",
        entity_type="user",
        entity_id=u.id,
        metadata={"from": prev, "to": u.role},
    )

    db.commit()
    db.refresh(u)
    return to_out(u)


@router.patch("/{user_id}/avatar", response_model=UserOut)
def update_avatar(
    user_id: uuid.UUID,
    payload: AvatarUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Users change their own avatar; admins may force one on anybody."""
    if user_id != current_user.id and not has_role(current_user, "ADMIN"):
        raise HTTPException(status_code=403, detail="You can only change your own avatar")

    u = get_user_or_404(db, user_id)
    u.avatar = payload.avatar

    if u.id != current_user.id:
        log_event(
            db=db,
            actor=current_user,
            action="USER_AVATAR_FORCED",
            entity_type="user",
            entity_id=u.id,
        )

    db.commit()
    db.refresh(u)
    return to_out(u)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=409, detail="You cannot delete your own account")

    u = get_user_or_404(db, user_id)

    if u.agency_id:
        agency = db.get(Agency, u.agency_id)
        if agency and agency.employee_count > 0:
            agency.employee_count -= 1

    log_event(
        db=db,
        actor=current_user,
        action="USER_DELETED",
        entity_type="user",
        entity_id=u.id,
        metadata={"email": u.email, "name": u.name},
    )

    db.delete(u)
    db.commit()
    logger.info("User deleted", extra={"user_id": str(user_id), "actor_id": str(current_user.id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
