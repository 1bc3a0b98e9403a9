from datetime import date

from sqlalchemy.orm import Session

from phutho_rate.db.base import Base
from phutho_rate.db.session import SessionLocal, engine
from phutho_rate.models.agency import Agency
from phutho_rate.models.evaluation_cycle import EvaluationCycle
from phutho_rate.models.user import User
from phutho_rate.scoring.types import AllAgencies, Criterion, RatingBand

DEFAULT_CRITERIA = [
    Criterion(id="professionalism", name="Chuyên môn", order=1),
    Criterion(id="productivity", name="Hiệu suất", order=2),
    Criterion(id="collaboration", name="Hợp tác", order=3),
    Criterion(id="innovation", name="Đổi mới", order=4),
    Criterion(id="discipline", name="Kỷ luật", order=5),
]

DEFAULT_RATINGS = [
    RatingBand(id="excellent", label="Xuất sắc", min_score=90, color="#10b981", order=1),
    RatingBand(id="good", label="Tốt", min_score=80, color="#3b82f6", order=2),
    RatingBand(id="fair", label="Khá", min_score=65, color="#f59e0b", order=3),
    RatingBand(id="average", label="Trung bình", min_score=50, color="#6366f1", order=4),
    RatingBand(id="weak", label="Yếu", min_score=0, color="#f43f5e", order=5),
]


def get_or_create_agency(db: Session, name: str) -> Agency:
    a = db.query(Agency).filter(Agency.name == name).one_or_none()
    if a:
        return a
    a = Agency(name=name, description="", employee_count=0)
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


def get_or_create_user(
    db: Session,
    email: str,
    name: str,
    role: str = "EMPLOYEE",
    agency: Agency | None = None,
    department: str = "",
    position: str = "",
) -> User:
    u = db.query(User).filter(User.email == email).one_or_none()
    if u:
        return u
    u = User(
        email=email,
        name=name,
        role=role,
        agency_id=agency.id if agency else None,
        department=department,
        position=position,
        is_active=True,
    )
    db.add(u)
    if agency:
        agency.employee_count += 1
    db.commit()
    db.refresh(u)
    return u


def get_or_create_cycle(db: Session, name: str, created_by_user_id) -> EvaluationCycle:
    c = db.query(EvaluationCycle).filter(EvaluationCycle.name == name).one_or_none()
    if c:
        return c
    c = EvaluationCycle(
        name=name,
        start_date=date(2026, 1, 1),
        end_date=date(2026, 3, 31),
        status="ACTIVE",
        created_by_user_id=created_by_user_id,
    )
    c.scope = AllAgencies()
    c.criteria = DEFAULT_CRITERIA
    c.ratings = DEFAULT_RATINGS
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        # ---- Agencies ----
        agency = get_or_create_agency(db, "Sở Nội vụ")

        # ---- Users ----
        admin_user = get_or_create_user(db, "admin@local.test", "Admin Local", role="ADMIN")
        leader = get_or_create_user(db, "leader@local.test", "Trần Văn Lãnh", role="LEADER", agency=agency,
                                    department="Văn phòng", position="Giám đốc")
        staff = [
            get_or_create_user(db, f"staff{i}@local.test", name, agency=agency,
                               department="Phòng Tổ chức", position="Chuyên viên")
            for i, name in enumerate(["Nguyễn Thị An", "Lê Văn Bình", "Phạm Thu Cúc"], start=1)
        ]

        # ---- Cycle (ACTIVE) ----
        cycle = get_or_create_cycle(db, "ĐÁNH GIÁ QUÝ 1/2026", created_by_user_id=admin_user.id)

        print("\n=== Demo Seed Complete ===")
        print("Users (use as X-User-Email header):")
        print(f"  admin:  {admin_user.email}")
        print(f"  leader: {leader.email}")
        for u in staff:
            print(f"  staff:  {u.email}")

        print("\nCycle:")
        print(f"  cycle_id: {cycle.id}")
        print(f"  name:     {cycle.name}")
        print(f"  status:   {cycle.status}")

        print("\nNext actions:")
        print("  1) (Staff) Pending colleagues: GET /me/pending?cycle_id={cycle_id}")
        print("  2) (Staff) Submit: POST /cycles/{cycle_id}/evaluations")
        print("  3) (Leader) Progress: GET /cycles/{cycle_id}/completion")
        print("  4) Board: GET /cycles/{cycle_id}/board")
        print()

    finally:
        db.close()


if __name__ == "__main__":
    main()
