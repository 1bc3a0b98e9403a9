from datetime import date, datetime
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from phutho_rate.models.agency import Agency
from phutho_rate.models.evaluation import Evaluation
from phutho_rate.models.evaluation_cycle import EvaluationCycle
from phutho_rate.models.user import User
from phutho_rate.scoring.types import AllAgencies, Criterion, RatingBand, SpecificAgencies

TZ = ZoneInfo("Asia/Ho_Chi_Minh")

# mid-February 2026, inside the default test cycle window
FIXED_NOW = datetime(2026, 2, 15, 10, 0, tzinfo=TZ)

CRITERIA = [
    Criterion(id="c1", name="Performance", order=1),
    Criterion(id="c2", name="Collaboration", order=2),
]

RATINGS = [
    RatingBand(id="r1", label="Excellent", min_score=90, color="#10b981", order=1),
    RatingBand(id="r2", label="Good", min_score=70, color="#3b82f6", order=2),
    RatingBand(id="r3", label="Weak", min_score=0, color="#f43f5e", order=3),
]


def auth(user: User) -> dict[str, str]:
    return {"X-User-Email": user.email}


def create_agency(db: Session, name: str = "Agency X") -> Agency:
    a = Agency(name=name, description="", employee_count=0)
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


def create_user(
    db: Session,
    email: str,
    name: str = "User",
    role: str = "EMPLOYEE",
    agency: Agency | None = None,
    department: str = "Office",
) -> User:
    u = User(
        email=email,
        name=name,
        role=role,
        agency_id=agency.id if agency else None,
        department=department,
        position="Officer",
        is_active=True,
    )
    db.add(u)
    if agency:
        agency.employee_count += 1
    db.commit()
    db.refresh(u)
    return u


def create_admin(db: Session, email: str = "admin@local.test") -> User:
    return create_user(db, email, name="Admin", role="ADMIN")


def create_cycle(
    db: Session,
    *,
    created_by: User | None = None,
    name: str = "Q1-2026",
    status: str = "ACTIVE",
    start_date: date = date(2026, 1, 1),
    end_date: date = date(2026, 3, 31),
    agencies: list[Agency] | None = None,
    criteria: list[Criterion] | None = None,
    ratings: list[RatingBand] | None = None,
) -> EvaluationCycle:
    c = EvaluationCycle(
        name=name,
        status=status,
        start_date=start_date,
        end_date=end_date,
        created_by_user_id=created_by.id if created_by else None,
    )
    if agencies is None:
        c.scope = AllAgencies()
    else:
        c.scope = SpecificAgencies(agency_ids=[str(a.id) for a in agencies])
    c.criteria = CRITERIA if criteria is None else criteria
    c.ratings = RATINGS if ratings is None else ratings
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def create_evaluation(
    db: Session,
    cycle: EvaluationCycle,
    evaluator: User,
    evaluatee: User,
    scores: dict[str, float],
) -> Evaluation:
    e = Evaluation(
        cycle_id=cycle.id,
        evaluator_id=evaluator.id,
        evaluatee_id=evaluatee.id,
        agency_id=evaluator.agency_id,
        scores=scores,
        comment="",
    )
    db.add(e)
    db.commit()
    db.refresh(e)
    return e
