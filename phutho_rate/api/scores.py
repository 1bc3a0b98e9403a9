import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from phutho_rate.core.config import settings
from phutho_rate.core.exceptions import ScopeError
from phutho_rate.core.rbac import require_roles
from phutho_rate.core.security import get_current_user
from phutho_rate.db.session import get_db
from phutho_rate.models.user import User
from phutho_rate.schemas.scores import (
    AgencySummaryOut,
    BandCountOut,
    BoardOut,
    BoardRowOut,
    BoardSummaryOut,
    CompletionRowOut,
    ScoreOut,
)
from phutho_rate.schemas.user import PeerOut
from phutho_rate.scoring.aggregate import aggregate
from phutho_rate.scoring.board import agency_summary, build_board
from phutho_rate.scoring.classify import rate
from phutho_rate.scoring.completion import track_completion
from phutho_rate.services.snapshots import (
    get_agency_or_404,
    get_cycle_or_404,
    get_user_or_404,
    load_agencies,
    load_cycle_evaluations,
    load_users,
)

router = APIRouter(prefix="/cycles/{cycle_id}", tags=["scores"])


def peer_out(u: User) -> PeerOut:
    return PeerOut(
        id=str(u.id),
        name=u.name,
        avatar=u.avatar,
        department=u.department,
        position=u.position,
    )


@router.get("/scores", response_model=ScoreOut)
def get_scores(
    cycle_id: uuid.UUID,
    evaluatee_id: uuid.UUID = Query(description="Whose scores to aggregate"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Aggregated scores of one colleague and the rating band they fall in."""
    cycle = get_cycle_or_404(db, cycle_id)
    get_user_or_404(db, evaluatee_id)

    evaluations = load_cycle_evaluations(db, cycle.id, evaluatee_id=evaluatee_id)
    result = aggregate(evaluatee_id, cycle.id, cycle.criteria, evaluations)

    return ScoreOut(
        cycle_id=str(cycle.id),
        evaluatee_id=str(evaluatee_id),
        per_criterion_average=result.per_criterion_average,
        overall_average=result.overall_average,
        sample_size=result.sample_size,
        is_rated=result.is_rated,
        rating=rate(result, cycle.ratings),
    )


@router.get("/completion", response_model=list[CompletionRowOut])
def get_completion(
    cycle_id: uuid.UUID,
    agency_id: uuid.UUID | None = Query(default=None, description="Defaults to the caller's agency"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN", "LEADER")),
):
    """Peer-evaluation progress of every participant of an agency, worst first."""
    cycle = get_cycle_or_404(db, cycle_id)
    agency_id = agency_id or current_user.agency_id
    if agency_id is None:
        raise HTTPException(status_code=400, detail="agency_id is required")
    get_agency_or_404(db, agency_id)
    if not cycle.scope.includes(agency_id):
        raise ScopeError("This cycle does not cover the selected agency")

    users = load_users(db, agency_id=agency_id)
    evaluations = load_cycle_evaluations(db, cycle.id, agency_id=agency_id)

    return [
        CompletionRowOut(
            evaluator=peer_out(row.evaluator),
            required=row.required,
            done=row.done,
            missing_peers=[peer_out(p) for p in row.missing_peers],
            is_complete=row.is_complete,
            percent=row.percent,
        )
        for row in track_completion(agency_id, cycle.id, users, evaluations)
    ]


@router.get("/board", response_model=BoardOut)
def get_board(
    cycle_id: uuid.UUID,
    agency_id: uuid.UUID | None = Query(default=None),
    department: str | None = Query(default=None),
    search: str | None = Query(default=None, description="Case-insensitive name search"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Public ranking board of a cycle."""
    cycle = get_cycle_or_404(db, cycle_id)

    board = build_board(
        cycle.id,
        cycle.criteria,
        cycle.ratings,
        load_users(db),
        load_agencies(db),
        load_cycle_evaluations(db, cycle.id),
        agency_id=agency_id,
        department=department,
        search=search,
        scope=cycle.scope,
        unknown_agency_label=settings.UNKNOWN_AGENCY_LABEL,
    )

    rows = []
    for row in board.rows:
        completion = row.completion
        rows.append(
            BoardRowOut(
                user=peer_out(row.user),
                agency_id=str(row.user.agency_id) if row.user.agency_id else None,
                agency_name=row.agency_name,
                per_criterion_average=row.result.per_criterion_average,
                overall_average=row.result.overall_average,
                received=row.result.sample_size,
                is_rated=row.result.is_rated,
                rating=row.band,
                rank_in_agency=row.rank_in_agency,
                evaluations_done=completion.done if completion else 0,
                evaluations_required=completion.required if completion else 0,
                completion_percent=completion.percent if completion else 0,
                is_complete=completion.is_complete if completion else False,
            )
        )

    summary = board.summary
    return BoardOut(
        cycle_id=str(cycle.id),
        rows=rows,
        summary=BoardSummaryOut(
            total_staff=summary.total_staff,
            completed_evaluators=summary.completed_evaluators,
            completion_rate=summary.completion_rate,
            system_average=summary.system_average,
            distribution=[BandCountOut(**b.model_dump()) for b in summary.distribution],
        ),
    )


@router.get("/agencies/{agency_id}/summary", response_model=AgencySummaryOut)
def get_agency_summary(
    cycle_id: uuid.UUID,
    agency_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles("ADMIN", "LEADER")),
):
    """Leader dashboard figures for one agency."""
    cycle = get_cycle_or_404(db, cycle_id)
    get_agency_or_404(db, agency_id)
    if not cycle.scope.includes(agency_id):
        raise ScopeError("This cycle does not cover the selected agency")

    summary = agency_summary(
        agency_id,
        cycle.id,
        cycle.criteria,
        load_users(db, agency_id=agency_id),
        load_cycle_evaluations(db, cycle.id),
    )
    return AgencySummaryOut(cycle_id=str(cycle.id), **summary.model_dump())
