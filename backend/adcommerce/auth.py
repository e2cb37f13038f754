"""
Authentication — JWT (admin login) and API-key (programmatic) auth.

- Web/frontend: JWT from /api/auth/login. Include: Authorization: Bearer <jwt>
- Programmatic: API_KEY, when configured. Include: Authorization: Bearer <API_KEY>
"""

import logging
import secrets
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from adcommerce.config import get_settings
from adcommerce.services.auth_service import decode_access_token

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


async def require_auth(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
) -> str:
    """
    Accept either a JWT (admin login) or the API_KEY.
    Returns the JWT subject, or "api-key" when the API key matched.
    """
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Missing authorization. Include header: Authorization: Bearer <token>",
        )

    token = credentials.credentials

    payload = decode_access_token(token)
    if payload and payload.get("sub"):
        return payload["sub"]

    api_key = get_settings().api_key
    if api_key and secrets.compare_digest(token.encode(), api_key.encode()):
        return "api-key"

    raise HTTPException(
        status_code=401,
        detail="Invalid or expired token. Please log in again.",
    )
