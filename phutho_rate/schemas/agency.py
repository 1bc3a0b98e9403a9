from datetime import datetime
from pydantic import BaseModel, Field


class AgencyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=500)
    region_id: str | None = Field(default=None, max_length=64)


class AgencyOut(BaseModel):
    id: str
    name: str
    description: str
    employee_count: int
    region_id: str | None
    created_at: datetime
