"""Value types shared by the scoring library.

Everything here is plain data. The functions in the sibling modules accept
these models or any object exposing the same attributes (the SQLAlchemy
models do), so the library can run over API payloads, ORM rows or test
fixtures alike.
"""
import uuid
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

ALL_AGENCIES_SENTINEL = "all"


def canonical_agency_id(value: Any) -> str:
    """Lower-case hyphenated form of a UUID; ids that are not UUIDs are only stripped."""
    text = str(value).strip()
    try:
        return str(uuid.UUID(text))
    except ValueError:
        return text


class Role(str, Enum):
    ADMIN = "ADMIN"
    LEADER = "LEADER"
    EMPLOYEE = "EMPLOYEE"


class CycleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"
    UPCOMING = "UPCOMING"


class OpenState(str, Enum):
    OPEN = "OPEN"
    UPCOMING = "UPCOMING"
    EXPIRED = "EXPIRED"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"


class Criterion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    order: int = 0


class RatingBand(BaseModel):
    """One rating band; ``min_score`` is an inclusive lower bound."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=64)
    label: str = Field(min_length=1, max_length=100)
    min_score: float
    color: str = "#94a3b8"
    order: int = 0


UNRATED_BAND = RatingBand(id="unrated", label="unrated", min_score=0, color="#94a3b8", order=999)


class AllAgencies(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["all"] = "all"

    def includes(self, agency_id: Any) -> bool:
        return True

    def is_empty(self) -> bool:
        return False

    def to_target_ids(self) -> list[str]:
        return [ALL_AGENCIES_SENTINEL]


class SpecificAgencies(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["agencies"] = "agencies"
    agency_ids: list[str] = Field(default_factory=list)

    @field_validator("agency_ids")
    @classmethod
    def _canonical_ids(cls, value: list[str]) -> list[str]:
        # dedupe, keep first-seen order
        return list(dict.fromkeys(canonical_agency_id(i) for i in value))

    def includes(self, agency_id: Any) -> bool:
        return agency_id is not None and canonical_agency_id(agency_id) in self.agency_ids

    def is_empty(self) -> bool:
        return not self.agency_ids

    def to_target_ids(self) -> list[str]:
        return list(self.agency_ids)


Scope = Annotated[Union[AllAgencies, SpecificAgencies], Field(discriminator="kind")]


def scope_from_target_ids(target_ids: list[Any] | None) -> AllAgencies | SpecificAgencies:
    """Read the legacy list form where ``"all"`` may be mixed into agency ids."""
    ids = [str(i) for i in (target_ids or [])]
    if ALL_AGENCIES_SENTINEL in ids:
        return AllAgencies()
    return SpecificAgencies(agency_ids=ids)


def missing_configuration(criteria: list | None, ratings: list | None) -> list[str]:
    missing = []
    if not criteria:
        missing.append("criteria")
    if not ratings:
        missing.append("ratings")
    return missing


def is_scoreable(criteria: list | None, ratings: list | None) -> bool:
    return not missing_configuration(criteria, ratings)


class EvaluationRecord(BaseModel):
    """Snapshot of one submitted peer evaluation."""
    id: str | None = None
    evaluator_id: Any
    evaluatee_id: Any
    cycle_id: Any
    scores: dict[str, float] = Field(default_factory=dict)
    comment: str = ""
    agency_id: Any = None


class Participant(BaseModel):
    id: Any
    name: str
    role: Role = Role.EMPLOYEE
    agency_id: Any = None
    department: str = ""


class AggregateResult(BaseModel):
    per_criterion_average: dict[str, float]
    overall_average: float
    sample_size: int

    @computed_field
    @property
    def is_rated(self) -> bool:
        return self.sample_size > 0

    @classmethod
    def empty(cls, criteria: list | None) -> "AggregateResult":
        return cls(
            per_criterion_average={c.id: 0.0 for c in (criteria or [])},
            overall_average=0.0,
            sample_size=0,
        )


class CompletionRow(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    evaluator: Any
    required: int
    done: int
    missing_peers: list[Any]
    is_complete: bool
    percent: int
