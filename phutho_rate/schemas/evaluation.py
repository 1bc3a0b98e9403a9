import uuid
from datetime import datetime
from pydantic import BaseModel, Field


class EvaluationSubmit(BaseModel):
    evaluatee_id: uuid.UUID
    scores: dict[str, float]
    comment: str = Field(default="", max_length=2000)


class EvaluationOut(BaseModel):
    id: str
    cycle_id: str
    evaluator_id: str
    evaluatee_id: str
    agency_id: str | None
    scores: dict[str, float]
    comment: str
    created_at: datetime
