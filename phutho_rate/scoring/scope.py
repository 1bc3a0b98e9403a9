from datetime import date, datetime, time, tzinfo
from typing import Any, Iterable, TypeVar

from phutho_rate.core.exceptions import ScopeError
from phutho_rate.scoring.types import CycleStatus, OpenState

C = TypeVar("C")

OPEN_STATE_REASONS: dict[OpenState, str] = {
    OpenState.OPEN: "The cycle is open for evaluations",
    OpenState.UPCOMING: "The cycle has not started yet",
    OpenState.EXPIRED: "The evaluation window of this cycle has ended",
    OpenState.PAUSED: "The cycle is temporarily paused by an administrator",
    OpenState.CLOSED: "The cycle has been closed",
}


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_day(d: date | datetime, tz: tzinfo | None = None) -> datetime:
    return datetime.combine(_as_date(d), time.min, tzinfo=tz)


def end_of_day(d: date | datetime, tz: tzinfo | None = None) -> datetime:
    return datetime.combine(_as_date(d), time.max, tzinfo=tz)


def cycles_visible_to(agency_id: Any, cycles: Iterable[C]) -> list[C]:
    """Cycles whose scope covers ``agency_id``, in input order."""
    return [c for c in cycles if c.scope.includes(agency_id)]


def cycle_open_state(cycle: Any, now: datetime) -> OpenState:
    """
    Priority chain: PAUSED, CLOSED, EXPIRED, UPCOMING, OPEN.

    Dates are calendar days in the same timezone as ``now``; the end date is
    inclusive through the last microsecond of that day.
    """
    status = cycle.status
    if status == CycleStatus.PAUSED:
        return OpenState.PAUSED
    if status == CycleStatus.CLOSED:
        return OpenState.CLOSED
    if now > end_of_day(cycle.end_date, now.tzinfo):
        return OpenState.EXPIRED
    if status == CycleStatus.UPCOMING or now < start_of_day(cycle.start_date, now.tzinfo):
        return OpenState.UPCOMING
    return OpenState.OPEN


def open_state_reason(state: OpenState) -> str:
    return OPEN_STATE_REASONS[state]


def ensure_open(cycle: Any, now: datetime) -> None:
    state = cycle_open_state(cycle, now)
    if state != OpenState.OPEN:
        raise ScopeError(open_state_reason(state), state=state.value)
