"""Public ranking board and per-agency analytics.

Both views are built from the same snapshot the other scoring functions take:
users, agencies and the evaluations of one cycle. Nothing here touches the
database.
"""
from collections import defaultdict
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict

from phutho_rate.scoring.aggregate import aggregate, average_scores, round1, round_percent
from phutho_rate.scoring.classify import rate
from phutho_rate.scoring.completion import agency_participants, track_completion
from phutho_rate.scoring.types import (
    AggregateResult,
    CompletionRow,
    Criterion,
    RatingBand,
    Role,
    UNRATED_BAND,
)


class BoardRow(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    user: Any
    agency_name: str
    result: AggregateResult
    band: RatingBand
    completion: CompletionRow | None
    rank_in_agency: int | None = None


class BandCount(BaseModel):
    band_id: str
    label: str
    color: str
    count: int


class BoardSummary(BaseModel):
    total_staff: int
    completed_evaluators: int
    completion_rate: int
    system_average: float
    distribution: list[BandCount]


class Board(BaseModel):
    rows: list[BoardRow]
    summary: BoardSummary


class AgencySummary(BaseModel):
    agency_id: str
    staff_count: int
    evaluations_received: int
    evaluated_staff_rate: int
    per_criterion_average: dict[str, float]
    overall_average: float


def _matches(user: Any, agency_id: Any, department: str | None, search: str | None) -> bool:
    if user.role == Role.ADMIN:
        return False
    if agency_id is not None and user.agency_id != agency_id:
        return False
    if department and (user.department or "").upper() != department.upper():
        return False
    if search and search.upper() not in (user.name or "").upper():
        return False
    return True


def _assign_ranks(rows: list[BoardRow]) -> None:
    by_agency: dict[Any, list[BoardRow]] = defaultdict(list)
    for row in rows:
        if row.result.is_rated:
            by_agency[row.user.agency_id].append(row)

    for agency_rows in by_agency.values():
        agency_rows.sort(key=lambda r: r.result.overall_average, reverse=True)
        previous = None
        for position, row in enumerate(agency_rows, start=1):
            if previous is not None and row.result.overall_average == previous.result.overall_average:
                row.rank_in_agency = previous.rank_in_agency
            else:
                row.rank_in_agency = position
            previous = row


def _distribution(rows: list[BoardRow], ratings: list[RatingBand]) -> list[BandCount]:
    counts: dict[str, int] = defaultdict(int)
    for row in rows:
        counts[row.band.id] += 1

    bands = sorted(ratings or [], key=lambda b: b.min_score, reverse=True) + [UNRATED_BAND]
    return [
        BandCount(band_id=b.id, label=b.label, color=b.color, count=counts.get(b.id, 0))
        for b in bands
    ]


def build_board(
    cycle_id: Any,
    criteria: list[Criterion],
    ratings: list[RatingBand],
    users: Iterable[Any],
    agencies: Iterable[Any],
    evaluations: Iterable[Any],
    *,
    agency_id: Any = None,
    department: str | None = None,
    search: str | None = None,
    scope: Any = None,
    unknown_agency_label: str = "Unknown agency",
) -> Board:
    """
    One row per non-admin user matching the filters. With a ``scope``, staff of
    agencies the cycle does not cover are left out entirely.
    """
    users = list(users)
    agency_names = {a.id: a.name for a in agencies}
    cycle_evaluations = [e for e in evaluations if e.cycle_id == cycle_id]

    received: dict[Any, list[Any]] = defaultdict(list)
    for e in cycle_evaluations:
        received[e.evaluatee_id].append(e)

    staff = [
        u for u in users
        if (scope is None or scope.includes(u.agency_id)) and _matches(u, agency_id, department, search)
    ]

    # completion is always measured against the whole agency, whatever the filters
    completion: dict[Any, CompletionRow] = {}
    for agency in {u.agency_id for u in staff}:
        for row in track_completion(agency, cycle_id, users, cycle_evaluations):
            completion[row.evaluator.id] = row

    rows = []
    for u in staff:
        result = aggregate(u.id, cycle_id, criteria, received.get(u.id, []))
        rows.append(
            BoardRow(
                user=u,
                agency_name=agency_names.get(u.agency_id, unknown_agency_label),
                result=result,
                band=rate(result, ratings),
                completion=completion.get(u.id),
            )
        )

    _assign_ranks(rows)
    rows.sort(key=lambda r: (not r.result.is_rated, -r.result.overall_average, r.user.name or ""))

    rated = [r.result.overall_average for r in rows if r.result.is_rated]
    completed = sum(1 for r in rows if r.completion is not None and r.completion.is_complete)
    summary = BoardSummary(
        total_staff=len(rows),
        completed_evaluators=completed,
        completion_rate=round_percent(completed, len(rows)),
        system_average=round1(sum(rated) / len(rated)) if rated else 0.0,
        distribution=_distribution(rows, ratings),
    )
    return Board(rows=rows, summary=summary)


def agency_summary(
    agency_id: Any,
    cycle_id: Any,
    criteria: list[Criterion],
    users: Iterable[Any],
    evaluations: Iterable[Any],
) -> AgencySummary:
    staff = agency_participants(agency_id, users)
    staff_ids = {u.id for u in staff}
    received = [
        e for e in evaluations
        if e.cycle_id == cycle_id and e.evaluatee_id in staff_ids
    ]

    if received and criteria:
        per_criterion, overall = average_scores(criteria, received)
    else:
        empty = AggregateResult.empty(criteria)
        per_criterion, overall = empty.per_criterion_average, empty.overall_average

    return AgencySummary(
        agency_id=str(agency_id),
        staff_count=len(staff),
        evaluations_received=len(received),
        evaluated_staff_rate=round_percent(len({e.evaluatee_id for e in received}), len(staff)),
        per_criterion_average=per_criterion,
        overall_average=overall,
    )
