from phutho_rate.scoring.aggregate import aggregate, average_scores, round1, round_percent
from phutho_rate.scoring.board import agency_summary, build_board
from phutho_rate.scoring.classify import classify, rate
from phutho_rate.scoring.completion import completion_percent, track_completion
from phutho_rate.scoring.scope import (
    cycle_open_state,
    cycles_visible_to,
    end_of_day,
    ensure_open,
    open_state_reason,
)
from phutho_rate.scoring.types import (
    AggregateResult,
    AllAgencies,
    CompletionRow,
    Criterion,
    CycleStatus,
    EvaluationRecord,
    OpenState,
    Participant,
    RatingBand,
    Role,
    Scope,
    SpecificAgencies,
    UNRATED_BAND,
    is_scoreable,
    missing_configuration,
    scope_from_target_ids,
)

__all__ = [
    "aggregate", "average_scores", "round1", "round_percent",
    "agency_summary", "build_board",
    "classify", "rate",
    "completion_percent", "track_completion",
    "cycle_open_state", "cycles_visible_to", "end_of_day", "ensure_open", "open_state_reason",
    "AggregateResult", "AllAgencies", "CompletionRow", "Criterion", "CycleStatus",
    "EvaluationRecord", "OpenState", "Participant", "RatingBand", "Role", "Scope",
    "SpecificAgencies", "UNRATED_BAND", "is_scoreable", "missing_configuration",
    "scope_from_target_ids",
]
