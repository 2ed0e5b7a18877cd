from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from ..core.errors import ReservationError
from ..core.security import IdentityContext, decode_identity


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_identity(token: Annotated[str, Depends(oauth2_scheme)]) -> IdentityContext:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    try:
        identity = decode_identity(token)
    except (JWTError, ValueError) as exc:
        raise credentials_exception from exc
    if identity is None:
        raise credentials_exception
    return identity


def get_optional_identity(
    token: Annotated[str | None, Depends(optional_oauth2_scheme)],
) -> IdentityContext | None:
    if not token:
        return None
    return get_identity(token)


def require_roles(*roles: str):
    def dependency(identity: Annotated[IdentityContext, Depends(get_identity)]) -> IdentityContext:
        if identity.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return identity

    return dependency


def http_error(exc: ReservationError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))
