from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import models

logger = logging.getLogger(__name__)


def record(
    db: Session,
    *,
    actor_id: int | None,
    action: str,
    payload: dict[str, Any] | None = None,
    actor_type: models.ActorType = models.ActorType.admin,
) -> None:
    """Persist an audit entry after the primary change has been committed.

    Failures are logged and never reach the caller.
    """
    try:
        db.add(
            models.AuditLog(
                actor_type=actor_type,
                actor_id=actor_id,
                action=action,
                payload=payload,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to write audit log entry", extra={"action": action})
        return
    logger.info("[Admin Logged] User %s: %s", actor_id, action)


def list_entries(db: Session, *, limit: int = 200) -> list[models.AuditLog]:
    return (
        db.query(models.AuditLog)
        .order_by(models.AuditLog.created_at.desc(), models.AuditLog.id.desc())
        .limit(limit)
        .all()
    )


__all__ = ["record", "list_entries"]
