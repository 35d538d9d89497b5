# app/core/auth/dependencies.py
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from .security import decode_token

http_bearer = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: int
    email: str
    rol: str


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> CurrentUser:
    """Usuario autenticado a partir del bearer token"""
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No autenticado")

    payload = decode_token(creds.credentials)
    try:
        return CurrentUser(
            id=int(payload["sub"]),
            email=payload.get("email", ""),
            rol=payload.get("rol", "")
        )
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token sin usuario válido")


def require_roles(roles: List[str]):
    def _dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.rol not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permisos insuficientes")
        return current_user

    return _dependency
