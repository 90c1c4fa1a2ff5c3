import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from retrospect.core.config import settings

EDIT_SCOPE = "edit"

bearer_scheme = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_edit_password(password: str) -> bool:
    """Check the shared edit secret; a configured argon2 hash takes precedence."""
    if settings.EDIT_PASSWORD_HASH:
        try:
            return pwd_context.verify(password, settings.EDIT_PASSWORD_HASH)
        except ValueError:
            return False
    return secrets.compare_digest(password.encode(), settings.EDIT_PASSWORD.encode())


def create_edit_token(expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.EDIT_TOKEN_EXPIRE_MINUTES))
    payload = {"scope": EDIT_SCOPE, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_edit_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


async def require_edit_capability(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Dependency for write endpoints: the caller must present an edit token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Edit capability required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_edit_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired edit token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    if payload.get("scope") != EDIT_SCOPE:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token lacks edit scope")
    return payload
