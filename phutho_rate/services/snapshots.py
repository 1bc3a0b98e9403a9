"""Read side of the service: materialized snapshots for the scoring library.

Each loader returns plain lists so the pure functions in ``phutho_rate.scoring``
never see a query object. Store failures surface as ``DataFetchError``.
"""
import logging
import uuid
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from phutho_rate.core.config import settings
from phutho_rate.core.exceptions import DataFetchError, NotFoundError
from phutho_rate.models.agency import Agency
from phutho_rate.models.evaluation import Evaluation
from phutho_rate.models.evaluation_cycle import EvaluationCycle
from phutho_rate.models.user import User

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _fetch(what: str, load: Callable[[], T]) -> T:
    try:
        return load()
    except SQLAlchemyError as exc:
        logger.error("Failed to load %s", what, exc_info=exc)
        raise DataFetchError(what) from exc


def get_cycle_or_404(db: Session, cycle_id: uuid.UUID) -> EvaluationCycle:
    cycle = _fetch("the evaluation cycle", lambda: db.get(EvaluationCycle, cycle_id))
    if not cycle:
        raise NotFoundError("Cycle")
    return cycle


def get_agency_or_404(db: Session, agency_id: uuid.UUID) -> Agency:
    agency = _fetch("the agency", lambda: db.get(Agency, agency_id))
    if not agency:
        raise NotFoundError("Agency")
    return agency


def get_user_or_404(db: Session, user_id: uuid.UUID) -> User:
    user = _fetch("the user", lambda: db.get(User, user_id))
    if not user:
        raise NotFoundError("User")
    return user


def load_cycles(db: Session) -> list[EvaluationCycle]:
    """All cycles, newest start date first."""
    return _fetch(
        "evaluation cycles",
        lambda: db.query(EvaluationCycle)
        .order_by(EvaluationCycle.start_date.desc(), EvaluationCycle.created_at.desc())
        .all(),
    )


def load_users(db: Session, agency_id: uuid.UUID | None = None, role: str | None = None) -> list[User]:
    def _load():
        q = db.query(User).filter(User.is_active.is_(True))
        if agency_id is not None:
            q = q.filter(User.agency_id == agency_id)
        if role:
            q = q.filter(User.role == role)
        return q.order_by(User.name).all()

    return _fetch("staff", _load)


def load_agencies(db: Session) -> list[Agency]:
    return _fetch("agencies", lambda: db.query(Agency).order_by(Agency.name).all())


def load_cycle_evaluations(
    db: Session,
    cycle_id: uuid.UUID,
    *,
    evaluator_id: uuid.UUID | None = None,
    evaluatee_id: uuid.UUID | None = None,
    agency_id: uuid.UUID | None = None,
) -> list[Evaluation]:
    def _load():
        q = db.query(Evaluation).filter(Evaluation.cycle_id == cycle_id)
        if evaluator_id is not None:
            q = q.filter(Evaluation.evaluator_id == evaluator_id)
        if evaluatee_id is not None:
            q = q.filter(Evaluation.evaluatee_id == evaluatee_id)
        if agency_id is not None:
            q = q.filter(Evaluation.agency_id == agency_id)
        return q.order_by(Evaluation.created_at).all()

    return _fetch("evaluations", _load)


def agency_name(db: Session, agency_id: uuid.UUID | None) -> str:
    """Display name for an agency; never fails, falls back to a placeholder."""
    if agency_id is None:
        return settings.UNKNOWN_AGENCY_LABEL
    try:
        agency = db.get(Agency, agency_id)
    except SQLAlchemyError as exc:
        logger.warning("Agency name lookup failed for %s", agency_id, exc_info=exc)
        return settings.UNKNOWN_AGENCY_LABEL
    return agency.name if agency else settings.UNKNOWN_AGENCY_LABEL
