"""
Password hashing, JWT access tokens and role checks.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import AccessDeniedError, AuthenticationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode a token. Returns None when invalid and {"error": "TOKEN_EXPIRED"}
    when the signature is valid but the token has expired.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        return {"error": "TOKEN_EXPIRED"}
    except JWTError as e:
        logger.info(f"Token rejected: {e}")
        return None


def ensure_authenticated(actor) -> None:
    if actor is None:
        raise AuthenticationError("Unauthorized")
    if not actor.is_active:
        raise AccessDeniedError("Account is inactive")


def ensure_manager(actor) -> None:
    """Manager-only operations call this first."""
    ensure_authenticated(actor)
    if not actor.is_manager:
        raise AccessDeniedError("Permission denied: Managers only")
