from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import jwt

from ..config import get_settings

ALGORITHM = "HS256"


@dataclass(frozen=True, slots=True)
class IdentityContext:
    """Caller identity supplied by the auth layer; trusted as-is."""

    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_access_token(data: Dict[str, Any], expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_min)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def decode_identity(token: str) -> IdentityContext | None:
    """Return the identity encoded in ``token`` or ``None`` when claims are missing.

    Raises ``jose.JWTError`` for invalid or expired tokens.
    """
    settings = get_settings()
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    user_id = payload.get("sub")
    role = payload.get("role")
    if user_id is None or role is None:
        return None
    return IdentityContext(user_id=int(user_id), role=str(role))
