import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from phutho_rate.core.audit import log_event
from phutho_rate.core.rbac import require_roles
from phutho_rate.core.security import get_current_user
from phutho_rate.db.session import get_db
from phutho_rate.models.agency import Agency
from phutho_rate.models.user import User
from phutho_rate.schemas.agency import AgencyCreate, AgencyOut
from phutho_rate.services.snapshots import get_agency_or_404, load_agencies

router = APIRouter(prefix="/agencies", tags=["agencies"])


def to_out(a: Agency) -> AgencyOut:
    return AgencyOut(
        id=str(a.id),
        name=a.name,
        description=a.description,
        employee_count=a.employee_count,
        region_id=a.region_id,
        created_at=a.created_at,
    )


@router.get("", response_model=list[AgencyOut])
def list_agencies(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return [to_out(a) for a in load_agencies(db)]


@router.get("/{agency_id}", response_model=AgencyOut)
def get_agency(
    agency_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return to_out(get_agency_or_404(db, agency_id))


@router.post("", response_model=AgencyOut, status_code=status.HTTP_201_CREATED)
def create_agency(
    payload: AgencyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("ADMIN")),
):
    name = payload.name.strip()
    if db.query(Agency).filter(Agency.name == name).one_or_none():
        raise HTTPException(status_code=409, detail="Agency already exists")

    a = Agency(
        name=name,
        description=payload.description,
        region_id=payload.region_id,
        employee_count=0,
    )
    db.add(a)
    db.flush()

    log_event(
        db=db,
        actor=current_user,
        action="AGENCY_CREATED",
        entity_type="agency",
        entity_id=a.id,
        metadata={"name": a.name},
    )

    db.commit()
    db.refresh(a)
    return to_out(a)
