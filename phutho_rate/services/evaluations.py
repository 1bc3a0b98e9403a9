import logging
import math
import uuid
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from phutho_rate.core.audit import log_event
from phutho_rate.core.config import settings
from phutho_rate.core.exceptions import (
    DuplicateSubmissionError,
    ForbiddenError,
    IncompleteConfigurationError,
    InvalidEvaluationError,
    NotFoundError,
    ScopeError,
)
from phutho_rate.models.evaluation import Evaluation
from phutho_rate.models.evaluation_cycle import EvaluationCycle
from phutho_rate.models.user import User
from phutho_rate.scoring.scope import ensure_open
from phutho_rate.scoring.types import Criterion, Role, missing_configuration

logger = logging.getLogger(__name__)


def validate_scores(criteria: list[Criterion], scores: dict[str, float]) -> dict[str, float]:
    expected = {c.id for c in criteria}
    given = set(scores)

    unknown = sorted(given - expected)
    missing = sorted(expected - given)
    if unknown or missing:
        raise InvalidEvaluationError(
            "Scores must cover exactly the criteria of this cycle",
            details={"unknown": unknown, "missing": missing},
        )

    out_of_range = sorted(
        key for key, value in scores.items()
        if not math.isfinite(value) or not 0 <= value <= settings.SCORE_MAX
    )
    if out_of_range:
        raise InvalidEvaluationError(
            f"Scores must be between 0 and {settings.SCORE_MAX}",
            details={"criteria": out_of_range},
        )
    return {c.id: float(scores[c.id]) for c in criteria}


def find_existing(db: Session, evaluator_id, evaluatee_id, cycle_id) -> Evaluation | None:
    return (
        db.query(Evaluation)
        .filter(
            Evaluation.evaluator_id == evaluator_id,
            Evaluation.evaluatee_id == evaluatee_id,
            Evaluation.cycle_id == cycle_id,
        )
        .one_or_none()
    )


def submit_evaluation(
    db: Session,
    *,
    evaluator: User,
    cycle: EvaluationCycle,
    evaluatee_id: uuid.UUID,
    scores: dict[str, float],
    comment: str,
    now: datetime,
) -> Evaluation:
    """
    Record one peer evaluation.

    Checks run in order: role, agency membership and scope, open window,
    cycle configuration, evaluatee eligibility, score shape. The write itself
    is insert-if-absent on (evaluator, evaluatee, cycle); the unique constraint
    is the final guard when two submissions race past the pre-check.
    """
    if evaluator.role == Role.ADMIN:
        raise ForbiddenError("Administrators do not take part in peer evaluation")

    if evaluator.agency_id is None:
        raise ScopeError("Your account is not attached to an agency")

    if not cycle.scope.includes(evaluator.agency_id):
        raise ScopeError("This cycle does not cover your agency")

    ensure_open(cycle, now)

    criteria = cycle.criteria
    missing = missing_configuration(criteria, cycle.ratings)
    if missing:
        raise IncompleteConfigurationError(missing)

    evaluatee = db.get(User, evaluatee_id)
    if not evaluatee or not evaluatee.is_active:
        raise NotFoundError("Colleague")
    if evaluatee.id == evaluator.id:
        raise InvalidEvaluationError("You cannot evaluate yourself")
    if evaluatee.role == Role.ADMIN or evaluatee.agency_id != evaluator.agency_id:
        raise InvalidEvaluationError("You can only evaluate colleagues of your own agency")

    clean_scores = validate_scores(criteria, scores)

    if find_existing(db, evaluator.id, evaluatee.id, cycle.id):
        raise DuplicateSubmissionError(evaluator.id, evaluatee.id, cycle.id)

    # SAVEPOINT so a constraint hit does not poison the request transaction
    try:
        with db.begin_nested():
            e = Evaluation(
                cycle_id=cycle.id,
                evaluator_id=evaluator.id,
                evaluatee_id=evaluatee.id,
                agency_id=evaluator.agency_id,
                scores=clean_scores,
                comment=comment.strip(),
            )
            db.add(e)
            db.flush()
    except IntegrityError as exc:
        raise DuplicateSubmissionError(evaluator.id, evaluatee.id, cycle.id) from exc

    log_event(
        db=db,
        actor=evaluator,
        action="EVALUATION_SUBMITTED",
        entity_type="evaluation",
        entity_id=e.id,
        metadata={
            "cycle_id": str(cycle.id),
            "evaluatee_id": str(evaluatee.id),
        },
    )
    logger.info(
        "Evaluation submitted",
        extra={"cycle_id": str(cycle.id), "evaluator_id": str(evaluator.id), "evaluatee_id": str(evaluatee.id)},
    )
    return e
