import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from phutho_rate.core.clock import get_now
from phutho_rate.core.rbac import has_role
from phutho_rate.core.security import get_current_user
from phutho_rate.db.session import get_db
from phutho_rate.models.evaluation import Evaluation
from phutho_rate.models.user import User
from phutho_rate.schemas.evaluation import EvaluationOut, EvaluationSubmit
from phutho_rate.services.evaluations import submit_evaluation
from phutho_rate.services.snapshots import get_cycle_or_404, load_cycle_evaluations

router = APIRouter(prefix="/cycles/{cycle_id}", tags=["evaluations"])


def eval_to_out(e: Evaluation) -> EvaluationOut:
    return EvaluationOut(
        id=str(e.id),
        cycle_id=str(e.cycle_id),
        evaluator_id=str(e.evaluator_id),
        evaluatee_id=str(e.evaluatee_id),
        agency_id=str(e.agency_id) if e.agency_id else None,
        scores=e.scores,
        comment=e.comment,
        created_at=e.created_at,
    )


@router.post("/evaluations", response_model=EvaluationOut, status_code=status.HTTP_201_CREATED)
def create_evaluation(
    cycle_id: uuid.UUID,
    payload: EvaluationSubmit,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    """
    Submit the caller's evaluation of one colleague.

    Rejected with 409 when the cycle is not open or the colleague was already
    evaluated by the caller in this cycle.
    """
    cycle = get_cycle_or_404(db, cycle_id)
    e = submit_evaluation(
        db,
        evaluator=user,
        cycle=cycle,
        evaluatee_id=payload.evaluatee_id,
        scores=payload.scores,
        comment=payload.comment,
        now=now,
    )
    db.commit()
    db.refresh(e)
    return eval_to_out(e)


@router.get("/evaluations", response_model=list[EvaluationOut])
def list_evaluations(
    cycle_id: uuid.UUID,
    evaluator_id: uuid.UUID | None = Query(default=None, description="Filter by evaluator"),
    evaluatee_id: uuid.UUID | None = Query(default=None, description="Filter by evaluatee"),
    agency_id: uuid.UUID | None = Query(default=None, description="Filter by evaluator agency"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    List evaluations in a cycle.
    Employees only see the evaluations they submitted themselves.
    """
    cycle = get_cycle_or_404(db, cycle_id)

    if not has_role(user, "ADMIN", "LEADER"):
        evaluator_id = user.id

    rows = load_cycle_evaluations(
        db,
        cycle.id,
        evaluator_id=evaluator_id,
        evaluatee_id=evaluatee_id,
        agency_id=agency_id,
    )
    return [eval_to_out(e) for e in rows]
