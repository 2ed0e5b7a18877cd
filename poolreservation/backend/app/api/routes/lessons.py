from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...api import deps
from ...config import get_settings
from ...core.errors import ReservationError
from ...core.security import IdentityContext
from ...db import schemas
from ...db.session import get_db
from ...services import lesson_service
from ...services.availability_service import interval_for

router = APIRouter(prefix="/lessons", tags=["lessons"])


@router.get("", response_model=list[schemas.Lesson])
def list_lessons(
    db: Session = Depends(get_db),
    _: IdentityContext = Depends(deps.require_roles("admin")),
):
    return lesson_service.list_lessons(db)


@router.post("", response_model=schemas.LessonCreated, status_code=status.HTTP_201_CREATED)
def create_lesson(
    payload: schemas.LessonCreate,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        interval = interval_for(payload.date, payload.start_time, payload.end_time, get_settings())
        lesson, warnings = lesson_service.create_lesson(
            db,
            interval,
            payload.participant_count,
            instructor_name=payload.instructor_name,
            notes=payload.notes,
            admin_id=admin.user_id,
        )
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
    return schemas.LessonCreated(lesson=schemas.Lesson.model_validate(lesson), warnings=warnings)


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(deps.require_roles("admin")),
):
    try:
        lesson_service.delete_lesson(db, lesson_id, admin.user_id)
    except ReservationError as exc:
        raise deps.http_error(exc) from exc
