from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from phutho_rate.scoring.types import AggregateResult, Criterion

_TENTH = Decimal("0.1")
_ONE = Decimal("1")


def round1(value: float) -> float:
    # half-up on the exact binary value, same digits the board has always shown
    return float(Decimal(value).quantize(_TENTH, rounding=ROUND_HALF_UP))


def round_percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).quantize(_ONE, rounding=ROUND_HALF_UP))


def _score_of(evaluation: Any, criterion_id: str) -> float:
    value = (evaluation.scores or {}).get(criterion_id)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Score for criterion {criterion_id!r} must be a number, got {value!r}")
    return float(value)


def average_scores(criteria: list[Criterion], evaluations: list[Any]) -> tuple[dict[str, float], float]:
    """
    Per-criterion means (missing keys count as 0) and their equal-weighted mean.

    Both levels are rounded to one decimal, the overall mean being taken over
    the already rounded per-criterion values.
    """
    count = len(evaluations)
    per_criterion = {
        c.id: round1(sum(_score_of(e, c.id) for e in evaluations) / count)
        for c in criteria
    }
    overall = round1(sum(per_criterion.values()) / len(per_criterion))
    return per_criterion, overall


def aggregate(
    evaluatee_id: Any,
    cycle_id: Any,
    criteria: list[Criterion] | None,
    evaluations: Iterable[Any],
) -> AggregateResult:
    matched = [
        e for e in evaluations
        if e.evaluatee_id == evaluatee_id and e.cycle_id == cycle_id
    ]
    if not matched or not criteria:
        return AggregateResult.empty(criteria)

    per_criterion, overall = average_scores(criteria, matched)
    return AggregateResult(
        per_criterion_average=per_criterion,
        overall_average=overall,
        sample_size=len(matched),
    )
