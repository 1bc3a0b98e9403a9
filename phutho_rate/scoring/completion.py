from typing import Any, Iterable

from phutho_rate.scoring.types import CompletionRow, Role


def completion_percent(done: int, required: int) -> int:
    """100 only on true completion, otherwise floored and capped at 99."""
    if done >= required:
        return 100
    return min(done * 100 // required, 99)


def agency_participants(agency_id: Any, users: Iterable[Any]) -> list[Any]:
    return [u for u in users if u.agency_id == agency_id and u.role != Role.ADMIN]


def track_completion(
    agency_id: Any,
    cycle_id: Any,
    users: Iterable[Any],
    evaluations: Iterable[Any],
) -> list[CompletionRow]:
    participants = agency_participants(agency_id, users)

    done_by_evaluator: dict[Any, set] = {}
    for e in evaluations:
        if e.cycle_id == cycle_id:
            done_by_evaluator.setdefault(e.evaluator_id, set()).add(e.evaluatee_id)

    rows = []
    for p in participants:
        targets = [u for u in participants if u.id != p.id]
        done_ids = done_by_evaluator.get(p.id, set()) & {u.id for u in targets}
        missing = [u for u in targets if u.id not in done_ids]
        done = len(done_ids)
        required = len(targets)
        rows.append(
            CompletionRow(
                evaluator=p,
                required=required,
                done=done,
                missing_peers=missing,
                is_complete=not missing,
                percent=completion_percent(done, required),
            )
        )

    # worst progress first; sorted() is stable so ties keep participant order
    return sorted(rows, key=lambda r: r.percent)
