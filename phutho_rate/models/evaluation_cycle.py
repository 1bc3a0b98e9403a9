import uuid
from datetime import datetime, date

from sqlalchemy import String, Date, DateTime, ForeignKey, CheckConstraint, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column
import sqlalchemy as sa

from phutho_rate.db.base import Base
from phutho_rate.scoring.types import (
    AllAgencies,
    Criterion,
    RatingBand,
    SpecificAgencies,
    scope_from_target_ids,
)


class EvaluationCycle(Base):
    __tablename__ = "cycles"
    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE','PAUSED','CLOSED','UPCOMING')",
            name="ck_cycles_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="UPCOMING")

    # ["all"] or explicit agency ids, read through .scope
    target_agency_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # frozen per cycle, never shared
    criteria_config: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    ratings_config: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
    )

    @property
    def scope(self) -> AllAgencies | SpecificAgencies:
        return scope_from_target_ids(self.target_agency_ids)

    @scope.setter
    def scope(self, value: AllAgencies | SpecificAgencies) -> None:
        self.target_agency_ids = value.to_target_ids()

    @property
    def criteria(self) -> list[Criterion]:
        items = [Criterion.model_validate(c) for c in (self.criteria_config or [])]
        return sorted(items, key=lambda c: c.order)

    @criteria.setter
    def criteria(self, value: list[Criterion]) -> None:
        self.criteria_config = [c.model_dump() for c in value]

    @property
    def ratings(self) -> list[RatingBand]:
        items = [RatingBand.model_validate(r) for r in (self.ratings_config or [])]
        return sorted(items, key=lambda r: r.order)

    @ratings.setter
    def ratings(self, value: list[RatingBand]) -> None:
        self.ratings_config = [r.model_dump() for r in value]
