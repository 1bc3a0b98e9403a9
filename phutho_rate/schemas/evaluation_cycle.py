import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from phutho_rate.core.config import settings
from phutho_rate.scoring.types import (
    Criterion,
    CycleStatus,
    OpenState,
    RatingBand,
    Scope,
    SpecificAgencies,
    scope_from_target_ids,
)


class EvaluationCycleWrite(BaseModel):
    """Full cycle definition; PUT replaces every field."""
    name: str = Field(min_length=1, max_length=200)
    start_date: date
    end_date: date
    scope: Scope
    criteria: list[Criterion] = Field(default_factory=list)
    ratings: list[RatingBand] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_target_agency_ids(cls, data):
        # older clients send the agency list with "all" mixed in
        if isinstance(data, dict) and "scope" not in data and "target_agency_ids" in data:
            data = dict(data)
            data["scope"] = scope_from_target_ids(data.pop("target_agency_ids")).model_dump()
        return data

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.scope.is_empty():
            raise ValueError("Select at least one agency, or all agencies")
        if isinstance(self.scope, SpecificAgencies):
            for agency_id in self.scope.agency_ids:
                try:
                    uuid.UUID(agency_id)
                except ValueError:
                    raise ValueError(f"{agency_id!r} is not a valid agency id") from None
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")

        criterion_ids = [c.id for c in self.criteria]
        if len(set(criterion_ids)) != len(criterion_ids):
            raise ValueError("Criterion ids must be unique")

        band_ids = [r.id for r in self.ratings]
        if len(set(band_ids)) != len(band_ids):
            raise ValueError("Rating band ids must be unique")
        for band in self.ratings:
            if not 0 <= band.min_score <= settings.SCORE_MAX:
                raise ValueError(f"Rating band {band.id!r} min_score must be within 0-{settings.SCORE_MAX}")
        return self


class EvaluationCycleCreate(EvaluationCycleWrite):
    status: Literal["ACTIVE", "UPCOMING"] = "ACTIVE"


class EvaluationCycleUpdate(EvaluationCycleWrite):
    pass


class EvaluationCycleOut(BaseModel):
    id: str
    name: str
    start_date: date
    end_date: date
    status: CycleStatus
    scope: Scope
    criteria: list[Criterion]
    ratings: list[RatingBand]
    created_by_user_id: str | None
    created_at: datetime
    updated_at: datetime
    # computed against the request clock
    open_state: OpenState
    open_reason: str
    scoreable: bool
