import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Text, UniqueConstraint, JSON, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column
import sqlalchemy as sa

from phutho_rate.db.base import Base


class Evaluation(Base):
    __tablename__ = "evaluations"
    __table_args__ = (
        # at most one evaluation of a peer per evaluator and cycle
        UniqueConstraint(
            "evaluator_id", "evaluatee_id", "cycle_id",
            name="uq_evaluations_evaluator_evaluatee_cycle",
        ),
        Index("ix_evaluations_cycle_evaluatee", "cycle_id", "evaluatee_id"),
        Index("ix_evaluations_cycle_agency", "cycle_id", "agency_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    cycle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cycles.id", ondelete="CASCADE"),
        nullable=False,
    )
    # no FK on the user references: evaluations outlive deleted accounts
    evaluator_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    evaluatee_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # denormalized from the evaluator at submit time
    agency_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    scores: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now()
    )
