from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...api import deps
from ...core.security import IdentityContext
from ...db import schemas
from ...db.session import get_db
from ...services import audit_service

router = APIRouter(tags=["misc"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/audit-logs", response_model=list[schemas.AuditLog])
def list_audit_logs(
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    _: IdentityContext = Depends(deps.require_roles("admin")),
):
    return audit_service.list_entries(db, limit=limit)
