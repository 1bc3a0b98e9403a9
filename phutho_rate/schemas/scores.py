from pydantic import BaseModel

from phutho_rate.schemas.user import PeerOut
from phutho_rate.scoring.types import RatingBand


class ScoreOut(BaseModel):
    cycle_id: str
    evaluatee_id: str
    per_criterion_average: dict[str, float]
    overall_average: float
    sample_size: int
    is_rated: bool
    rating: RatingBand


class CompletionRowOut(BaseModel):
    evaluator: PeerOut
    required: int
    done: int
    missing_peers: list[PeerOut]
    is_complete: bool
    percent: int


class BoardRowOut(BaseModel):
    user: PeerOut
    agency_id: str | None
    agency_name: str
    per_criterion_average: dict[str, float]
    overall_average: float
    received: int
    is_rated: bool
    rating: RatingBand
    rank_in_agency: int | None
    evaluations_done: int
    evaluations_required: int
    completion_percent: int
    is_complete: bool


class BandCountOut(BaseModel):
    band_id: str
    label: str
    color: str
    count: int


class BoardSummaryOut(BaseModel):
    total_staff: int
    completed_evaluators: int
    completion_rate: int
    system_average: float
    distribution: list[BandCountOut]


class BoardOut(BaseModel):
    cycle_id: str
    rows: list[BoardRowOut]
    summary: BoardSummaryOut


class AgencySummaryOut(BaseModel):
    cycle_id: str
    agency_id: str
    staff_count: int
    evaluations_received: int
    evaluated_staff_rate: int
    per_criterion_average: dict[str, float]
    overall_average: float
