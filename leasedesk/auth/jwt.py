from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from ..api.dependencies import get_state
from ..config import settings
from ..models.models import User
from ..services.permissions import has_permission
from ..services.store import AppState

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def _create_token(data: dict, expires_minutes: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = data.copy()
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str) -> str:
    payload = {"sub": user_id, "type": "access"}
    return _create_token(payload, settings.access_token_expire_minutes)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def get_current_user(token: str = Depends(oauth2_scheme), state: AppState = Depends(get_state)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        user_id: Optional[str] = payload.get("sub")
        token_type = payload.get("type")
        if user_id is None or token_type not in (None, "access"):
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = state.users.get(user_id)
    if user is None:
        raise credentials_exception
    return user


def require_permission(resource: str, action: str):
    def permission_checker(user: User = Depends(get_current_user)) -> User:
        if has_permission(user, resource, action):
            return user
        raise HTTPException(status_code=403, detail="Operation not permitted for your account")

    return permission_checker
