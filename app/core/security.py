from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from app.core.config import settings
from app.core.errors import ForbiddenError
from app.models.enums import UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def create_access_token(user_id: str, role: UserRole | str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[CurrentUser]:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.debug("Rejected access token: %s", e)
        return None
    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in {r.value for r in UserRole}:
        return None
    return CurrentUser(id=str(user_id), role=UserRole(role))


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = decode_access_token(credentials.credentials)
    if user is None:
        raise HTTPException(status_code=403, detail="Invalid or expired token")
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


__all__ = [
    "CurrentUser",
    "bearer_scheme",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "require_admin",
]
