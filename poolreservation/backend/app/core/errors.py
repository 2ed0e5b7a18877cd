"""Domain errors raised by the reservation services.

Each error carries the HTTP status the API layer reports for it, so routes can
translate any of them with a single ``except ReservationError`` clause.
"""

from __future__ import annotations


class ReservationError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ReservationError):
    status_code = 400


class InvalidStateError(ReservationError):
    status_code = 400


class ForbiddenError(ReservationError):
    status_code = 403


class NotFoundError(ReservationError):
    status_code = 404


class ConflictError(ReservationError):
    """Overlap or capacity breach against an existing claim on the pool."""

    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        claim_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.claim_id = claim_id


class PendingConflictError(ConflictError):
    pass


class ConfigurationError(ReservationError):
    status_code = 500


__all__ = [
    "ReservationError",
    "ValidationError",
    "InvalidStateError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "PendingConflictError",
    "ConfigurationError",
]
