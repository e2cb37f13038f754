"""
Auth Router — Admin login and whoami.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from adcommerce.auth import require_auth
from adcommerce.services.auth_service import verify_admin_credentials, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


# ── Schemas ────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str


class WhoAmIResponse(BaseModel):
    username: str


# ── Endpoints ───────────────────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest):
    """Login with the configured admin username and password. Returns JWT."""
    if not verify_admin_credentials(payload.username, payload.password):
        logger.warning(f"Failed login attempt for '{payload.username}'")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return TokenResponse(
        access_token=create_access_token(payload.username),
        username=payload.username,
    )


@router.get("/whoami", response_model=WhoAmIResponse)
async def whoami(subject: str = Depends(require_auth)):
    """Return the authenticated subject."""
    return WhoAmIResponse(username=subject)
