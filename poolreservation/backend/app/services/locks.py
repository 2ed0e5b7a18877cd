from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# First key of the two-int advisory lock; the second is the date ordinal.
SCHEDULE_LOCK_NAMESPACE = 7041
LOCK_STRIPES = 64

# Dates share a fixed set of locks so the table never grows.
_stripes = tuple(threading.Lock() for _ in range(LOCK_STRIPES))


def _local_lock(day: date) -> threading.Lock:
    return _stripes[day.toordinal() % LOCK_STRIPES]


@contextmanager
def schedule_guard(db: Session, day: date) -> Iterator[None]:
    """Serialize a read-validate-write sequence for ``day`` and commit it.

    The body runs while holding an in-process lock for the date and, on
    PostgreSQL, a transaction-scoped advisory lock shared by every API worker.
    The session is committed on success and rolled back on any error, which
    also releases the advisory lock.
    """
    with _local_lock(day):
        try:
            if db.get_bind().dialect.name == "postgresql":
                db.execute(
                    text("SELECT pg_advisory_xact_lock(:namespace, :day)"),
                    {"namespace": SCHEDULE_LOCK_NAMESPACE, "day": day.toordinal()},
                )
            yield
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.debug("Released schedule lock", extra={"day": day.isoformat()})


__all__ = ["schedule_guard"]
