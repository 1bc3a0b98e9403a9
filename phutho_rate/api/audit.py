import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from phutho_rate.core.rbac import require_roles
from phutho_rate.db.session import get_db
from phutho_rate.models.audit_event import AuditEvent
from phutho_rate.schemas.audit import AuditEventOut

router = APIRouter(prefix="/audit", tags=["audit"])


def to_out(e: AuditEvent) -> AuditEventOut:
    return AuditEventOut(
        id=str(e.id),
        actor_user_id=str(e.actor_user_id) if e.actor_user_id else None,
        action=e.action,
        entity_type=e.entity_type,
        entity_id=str(e.entity_id),
        metadata=e.event_metadata,
        created_at=e.created_at,
    )


@router.get("", response_model=list[AuditEventOut])
def list_audit_events(
    entity_type: str | None = Query(default=None, description="e.g. evaluation_cycle, evaluation, user"),
    entity_id: uuid.UUID | None = Query(default=None),
    actor_user_id: uuid.UUID | None = Query(default=None),
    action: str | None = Query(default=None, description="e.g. CYCLE_CLOSED"),
    since: datetime | None = Query(default=None, description="Only events at or after this instant"),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    _=Depends(require_roles("ADMIN")),
):
    """Audit trail, newest first."""
    q = db.query(AuditEvent)

    if entity_type:
        q = q.filter(AuditEvent.entity_type == entity_type)
    if entity_id:
        q = q.filter(AuditEvent.entity_id == entity_id)
    if actor_user_id:
        q = q.filter(AuditEvent.actor_user_id == actor_user_id)
    if action:
        q = q.filter(AuditEvent.action == action.upper())
    if since:
        q = q.filter(AuditEvent.created_at >= since)

    return [to_out(e) for e in q.order_by(AuditEvent.created_at.desc()).limit(limit).all()]
