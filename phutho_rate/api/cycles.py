import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from phutho_rate.core.audit import log_event
from phutho_rate.core.clock import get_now
from phutho_rate.core.exceptions import InvalidCycleError
from phutho_rate.core.rbac import has_role, require_roles
from phutho_rate.core.security import get_current_user
from phutho_rate.db.session import get_db
from phutho_rate.models.agency import Agency
from phutho_rate.models.evaluation import Evaluation
from phutho_rate.models.evaluation_cycle import EvaluationCycle
from phutho_rate.models.user import User
from phutho_rate.schemas.cycle_readiness import CycleReadinessCheck
from phutho_rate.schemas.evaluation_cycle import (
    EvaluationCycleCreate,
    EvaluationCycleOut,
    EvaluationCycleUpdate,
)
from phutho_rate.scoring.scope import cycle_open_state, cycles_visible_to, open_state_reason
from phutho_rate.scoring.types import CycleStatus, OpenState, SpecificAgencies, is_scoreable
from phutho_rate.services.snapshots import get_cycle_or_404, load_cycles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cycles", tags=["evaluation-cycles"])


def to_out(c: EvaluationCycle, now: datetime) -> EvaluationCycleOut:
    state = cycle_open_state(c, now)
    criteria, ratings = c.criteria, c.ratings
    return EvaluationCycleOut(
        id=str(c.id),
        name=c.name,
        start_date=c.start_date,
        end_date=c.end_date,
        status=c.status,
        scope=c.scope,
        criteria=criteria,
        ratings=ratings,
        created_by_user_id=str(c.created_by_user_id) if c.created_by_user_id else None,
        created_at=c.created_at,
        updated_at=c.updated_at,
        open_state=state,
        open_reason=open_state_reason(state),
        scoreable=is_scoreable(criteria, ratings),
    )


def _check_scope_agencies(db: Session, scope) -> None:
    if not isinstance(scope, SpecificAgencies):
        return
    wanted = {uuid.UUID(i) for i in scope.agency_ids}
    found = {row.id for row in db.query(Agency.id).filter(Agency.id.in_(list(wanted))).all()}
    unknown = sorted(str(i) for i in wanted - found)
    if unknown:
        raise InvalidCycleError("Cycle targets agencies that do not exist", details={"agency_ids": unknown})


def _snapshot(c: EvaluationCycle) -> dict:
    return {
        "name": c.name,
        "start_date": str(c.start_date),
        "end_date": str(c.end_date),
        "status": c.status,
        "target_agency_ids": c.target_agency_ids,
        "criteria": [cr["id"] for cr in c.criteria_config or []],
        "ratings": [r["id"] for r in c.ratings_config or []],
    }


@router.get("", response_model=list[EvaluationCycleOut])
def list_cycles(
    agency_id: uuid.UUID | None = Query(default=None, description="Only cycles covering this agency"),
    status: CycleStatus | None = Query(default=None, description="Filter by status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    """
    Cycles visible to an agency, newest first, each with its computed open state.

    Without agency_id, admins see every cycle and everyone else sees the cycles
    covering their own agency.
    """
    if agency_id is not None and agency_id != current_user.agency_id and not has_role(current_user, "ADMIN", "LEADER"):
        raise HTTPException(status_code=403, detail="You can only list cycles of your own agency")

    cycles = load_cycles(db)
    if agency_id is not None:
        cycles = cycles_visible_to(agency_id, cycles)
    elif not has_role(current_user, "ADMIN"):
        cycles = cycles_visible_to(current_user.agency_id, cycles)

    if status:
        cycles = [c for c in cycles if c.status == status]

    return [to_out(c, now) for c in cycles]


@router.get("/{cycle_id}", response_model=EvaluationCycleOut)
def get_cycle(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    return to_out(get_cycle_or_404(db, cycle_id), now)


@router.post("", response_model=EvaluationCycleOut, status_code=status.HTTP_201_CREATED)
def create_cycle(
    payload: EvaluationCycleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
    now: datetime = Depends(get_now),
):
    _check_scope_agencies(db, payload.scope)

    c = EvaluationCycle(
        name=payload.name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        status=payload.status,
        created_by_user_id=current_user.id,
    )
    c.scope = payload.scope
    c.criteria = payload.criteria
    c.ratings = payload.ratings

    db.add(c)
    db.flush()  # ensures c.id exists for audit

    log_event(
        db=db,
        actor=current_user,
        action="CYCLE_CREATED",
        entity_type="evaluation_cycle",
        entity_id=c.id,
        metadata=_snapshot(c),
    )

    db.commit()
    db.refresh(c)
    logger.info("Cycle created", extra={"cycle_id": str(c.id), "cycle_status": c.status})
    return to_out(c, now)


@router.put("/{cycle_id}", response_model=EvaluationCycleOut)
def update_cycle(
    cycle_id: uuid.UUID,
    payload: EvaluationCycleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
    now: datetime = Depends(get_now),
):
    c = get_cycle_or_404(db, cycle_id)

    if c.status == CycleStatus.CLOSED:
        raise HTTPException(status_code=409, detail="Closed cycles cannot be edited")
    _check_scope_agencies(db, payload.scope)

    before = _snapshot(c)

    c.name = payload.name
    c.start_date = payload.start_date
    c.end_date = payload.end_date
    c.scope = payload.scope
    c.criteria = payload.criteria
    c.ratings = payload.ratings

    log_event(
        db=db,
        actor=current_user,
        action="CYCLE_UPDATED",
        entity_type="evaluation_cycle",
        entity_id=c.id,
        metadata={"before": before, "after": _snapshot(c)},
    )

    db.commit()
    db.refresh(c)
    return to_out(c, now)


def _transition(
    db: Session,
    c: EvaluationCycle,
    *,
    to: CycleStatus,
    allowed_from: set[CycleStatus],
    action: str,
    actor: User,
) -> None:
    # Idempotent success: already in the target state
    if c.status == to:
        return

    if CycleStatus(c.status) not in allowed_from:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot move a {c.status} cycle to {to.value}",
        )

    prev = c.status
    c.status = to.value

    log_event(
        db=db,
        actor=actor,
        action=action,
        entity_type="evaluation_cycle",
        entity_id=c.id,
        metadata={"from": prev, "to": c.status},
    )

    db.commit()
    db.refresh(c)
    logger.info("Cycle status changed", extra={"cycle_id": str(c.id), "from": prev, "to": c.status})


@router.post("/{cycle_id}/activate", response_model=EvaluationCycleOut)
def activate_cycle(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
    now: datetime = Depends(get_now),
):
    c = get_cycle_or_404(db, cycle_id)
    _transition(
        db, c,
        to=CycleStatus.ACTIVE,
        allowed_from={CycleStatus.UPCOMING, CycleStatus.PAUSED},
        action="CYCLE_ACTIVATED",
        actor=current_user,
    )
    return to_out(c, now)


@router.post("/{cycle_id}/pause", response_model=EvaluationCycleOut)
def pause_cycle(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
    now: datetime = Depends(get_now),
):
    c = get_cycle_or_404(db, cycle_id)
    _transition(
        db, c,
        to=CycleStatus.PAUSED,
        allowed_from={CycleStatus.ACTIVE},
        action="CYCLE_PAUSED",
        actor=current_user,
    )
    return to_out(c, now)


@router.post("/{cycle_id}/close", response_model=EvaluationCycleOut)
def close_cycle(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
    now: datetime = Depends(get_now),
):
    c = get_cycle_or_404(db, cycle_id)
    _transition(
        db, c,
        to=CycleStatus.CLOSED,
        allowed_from={CycleStatus.ACTIVE, CycleStatus.PAUSED, CycleStatus.UPCOMING},
        action="CYCLE_CLOSED",
        actor=current_user,
    )
    return to_out(c, now)


@router.get("/{cycle_id}/readiness", response_model=CycleReadinessCheck)
def check_cycle_readiness(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
    now: datetime = Depends(get_now),
):
    """
    Check if a cycle can collect and score evaluations.
    Returns detailed checks, warnings, and errors.
    """
    cycle = get_cycle_or_404(db, cycle_id)

    checks: dict[str, bool] = {}
    warnings: list[str] = []
    errors: list[str] = []

    checks["not_closed"] = cycle.status != CycleStatus.CLOSED
    if not checks["not_closed"]:
        errors.append("Cycle is closed")

    checks["has_scope"] = not cycle.scope.is_empty()
    if not checks["has_scope"]:
        errors.append("Cycle does not target any agency")

    checks["has_criteria"] = bool(cycle.criteria)
    if not checks["has_criteria"]:
        errors.append("Cycle has no scoring criteria")

    checks["has_ratings"] = bool(cycle.ratings)
    if not checks["has_ratings"]:
        errors.append("Cycle has no rating bands")

    # Warnings (non-blocking)
    ratings = cycle.ratings
    if ratings and min(r.min_score for r in ratings) > 0:
        warnings.append("Lowest rating band does not start at 0; lower scores fall back to it")
    state = cycle_open_state(cycle, now)
    if checks["not_closed"] and state != OpenState.OPEN:
        warnings.append(open_state_reason(state))
    if db.query(Evaluation).filter(Evaluation.cycle_id == cycle.id).count() and checks["has_criteria"]:
        warnings.append("Cycle already has evaluations; editing criteria affects their averages")

    can_open = all(checks.values()) and len(errors) == 0
    ready = can_open and len(warnings) == 0

    return CycleReadinessCheck(
        ready=ready,
        can_open=can_open,
        checks=checks,
        warnings=warnings,
        errors=errors,
    )
