from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...api import deps
from ...core.security import IdentityContext
from ...db import schemas
from ...db.session import get_db
from ...services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=schemas.NotificationPage)
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(deps.get_identity),
):
    total, items = notification_service.list_for_user(db, identity.user_id, page=page, limit=limit)
    return schemas.NotificationPage(
        total=total,
        page=page,
        limit=limit,
        items=[schemas.Notification.model_validate(item) for item in items],
    )


@router.post("/{notification_id}/read", response_model=schemas.Notification)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(deps.get_identity),
):
    notification = notification_service.mark_read(db, identity.user_id, notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification
