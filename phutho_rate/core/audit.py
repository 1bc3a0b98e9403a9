import logging
from typing import Any

from sqlalchemy.orm import Session

from phutho_rate.models.audit_event import AuditEvent
from phutho_rate.models.user import User

logger = logging.getLogger(__name__)


def log_event(
    *,
    db: Session,
    actor: User | None,
    action: str,
    entity_type: str,
    entity_id,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent:
    """Stage an audit row in the caller's transaction so it commits with the change it records."""
    event = AuditEvent(
        actor_user_id=actor.id if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata or None,
    )
    db.add(event)
    logger.debug("Audit %s on %s %s", action, entity_type, entity_id)
    return event
