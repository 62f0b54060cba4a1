from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from sqlalchemy.orm import Session

from app.models import AuditActorType, AuditLog
from app.security import Actor

logger = logging.getLogger("app.audit")


def audit_actor_type(actor: Actor) -> AuditActorType:
    return AuditActorType.ADMIN if actor.is_privileged else AuditActorType.EMPLOYEE


def log_audit(
    db: Session,
    *,
    actor_type: AuditActorType,
    actor_id: str,
    action: str,
    success: bool = True,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditLog | None:
    """Persist an audit row in its own commit.

    Audit writes never fail the business operation that triggered them: a
    failed commit is rolled back, logged as ``audit_log_write_failed`` and
    ``None`` is returned.
    """
    entry = AuditLog(
        ts_utc=datetime.now(timezone.utc),
        actor_type=actor_type,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        success=success,
        details=details or {},
    )
    log_fields = {
        "request_id": request_id,
        "action": action,
        "actor_type": actor_type.value,
        "actor_id": actor_id,
        "entity_type": entity_type,
        "entity_id": entity_id,
    }

    db.add(entry)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("audit_log_write_failed", extra=log_fields)
        return None

    logger.info("audit_event", extra={**log_fields, "success": success, "details": details or {}})
    return entry


def log_actor_action(
    db: Session,
    request: Request,
    actor: Actor,
    *,
    action: str,
    entity_type: str,
    entity_id: int | str | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog | None:
    return log_audit(
        db,
        actor_type=audit_actor_type(actor),
        actor_id=actor.actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        details=details,
        request_id=getattr(request.state, "request_id", None),
    )
