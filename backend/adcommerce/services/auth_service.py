"""
Auth Service — Admin credential check, JWT creation/verification.
"""

import logging
import secrets
from datetime import datetime, timezone, timedelta
from typing import Optional

from jose import JWTError, jwt

from adcommerce.config import get_settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def verify_admin_credentials(username: str, password: str) -> bool:
    """Constant-time comparison against the configured admin account."""
    settings = get_settings()
    user_ok = secrets.compare_digest(username.encode(), settings.admin_username.encode())
    pass_ok = secrets.compare_digest(password.encode(), settings.admin_password.encode())
    return user_ok and pass_ok


def create_access_token(username: str) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
        "iat": now,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
