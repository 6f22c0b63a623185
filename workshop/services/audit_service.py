from typing import Optional

import structlog
from sqlalchemy.orm import Session

from workshop.models.audit_log import AuditLog

logger = structlog.get_logger(__name__)


def log_action(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    details: Optional[str] = None,
) -> AuditLog:
    # Joins the caller's transaction: the trail commits or rolls back with the change.
    entry = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    db.add(entry)

    logger.info(
        "audit",
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    return entry
