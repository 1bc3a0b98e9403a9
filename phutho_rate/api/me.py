import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from phutho_rate.core.clock import get_now
from phutho_rate.core.exceptions import ScopeError
from phutho_rate.core.security import get_current_user
from phutho_rate.db.session import get_db
from phutho_rate.models.user import User
from phutho_rate.schemas.user import PeerOut
from phutho_rate.scoring.completion import track_completion
from phutho_rate.scoring.scope import cycle_open_state, open_state_reason
from phutho_rate.scoring.types import Role
from phutho_rate.services.snapshots import (
    agency_name,
    get_cycle_or_404,
    load_cycle_evaluations,
    load_users,
)

router = APIRouter(prefix="/me", tags=["auth"])


@router.get("")
def me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get current user information including the agency name"""
    return {
        "id": str(current_user.id),
        "email": current_user.email,
        "name": current_user.name,
        "avatar": current_user.avatar,
        "role": current_user.role,
        "agency_id": str(current_user.agency_id) if current_user.agency_id else None,
        "agency_name": agency_name(db, current_user.agency_id),
        "department": current_user.department,
        "position": current_user.position,
        "is_active": current_user.is_active,
    }


@router.get("/pending")
def my_pending_peers(
    cycle_id: uuid.UUID = Query(description="Cycle to check"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    """
    Colleagues the caller still has to evaluate in a cycle, plus whether the
    cycle currently accepts submissions.
    """
    cycle = get_cycle_or_404(db, cycle_id)
    if current_user.agency_id is None:
        raise ScopeError("Your account is not attached to an agency")
    if current_user.role == Role.ADMIN or not cycle.scope.includes(current_user.agency_id):
        raise ScopeError("This cycle does not cover your agency")

    users = load_users(db, agency_id=current_user.agency_id)
    evaluations = load_cycle_evaluations(db, cycle.id, evaluator_id=current_user.id)
    rows = track_completion(current_user.agency_id, cycle.id, users, evaluations)
    mine = next(r for r in rows if r.evaluator.id == current_user.id)

    state = cycle_open_state(cycle, now)
    return {
        "cycle_id": str(cycle.id),
        "open_state": state.value,
        "open_reason": open_state_reason(state),
        "required": mine.required,
        "done": mine.done,
        "percent": mine.percent,
        "is_complete": mine.is_complete,
        "pending": [
            PeerOut(
                id=str(p.id),
                name=p.name,
                avatar=p.avatar,
                department=p.department,
                position=p.position,
            )
            for p in mine.missing_peers
        ],
    }
