"""
Meta Router — Ad accounts, campaigns, ad sets, ads and insights from the Graph API.
Every endpoint takes the user's Meta access token; nothing is stored server-side.
"""

import logging
from typing import Awaitable, Optional, TypeVar
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel
import httpx

from adcommerce.meta_client import create_meta_client, MetaAPIError
from adcommerce.utils import clean_token, safe_error_detail, token_preview

logger = logging.getLogger(__name__)
router = APIRouter()

T = TypeVar("T")


class MetaTokenRequest(BaseModel):
    meta_token: str


class MetaAllRequest(BaseModel):
    meta_token: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None


# ── Helpers ───────────────────────────────────────────────────────────

def _require_token(meta_token: Optional[str]) -> str:
    token = clean_token(meta_token or "")
    if not token:
        raise HTTPException(status_code=400, detail="Meta access token is required")
    return token


async def _meta_call(call: Awaitable[T], what: str) -> T:
    """Await a client call, translating upstream failures into HTTP errors."""
    try:
        return await call
    except MetaAPIError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except httpx.HTTPError as e:
        logger.error(f"Meta request failed while fetching {what}: {e}")
        raise HTTPException(status_code=502, detail=f"Meta API unreachable: {e}")
    except Exception as e:
        raise HTTPException(status_code=500, detail=safe_error_detail(e, f"Failed to fetch {what}"))


# ── Endpoints ─────────────────────────────────────────────────────────

@router.post("/debug")
async def debug_token(body: MetaTokenRequest):
    """Validate a Meta token against /me and report what was received."""
    token = _require_token(body.meta_token)
    logger.info(f"Debugging Meta token {token_preview(token)}")
    token_info = {"length": len(token), "prefix": token[:10] + "..."}

    client = create_meta_client(token)
    try:
        user = await client.get_me()
    except MetaAPIError as e:
        return {
            "success": False,
            "error": {"message": e.message, "code": e.code, "type": e.error_type},
            "token_info": token_info,
        }
    except httpx.HTTPError as e:
        raise HTTPException(status_code=502, detail=f"Meta API unreachable: {e}")

    return {"success": True, "message": "Token is valid", "user": user, "token_info": token_info}


@router.get("/accounts")
async def list_ad_accounts(meta_token: Optional[str] = Query(None)):
    client = create_meta_client(_require_token(meta_token))
    accounts = await _meta_call(client.get_ad_accounts(), "ad accounts")
    return {"success": True, "data": accounts}


@router.get("/campaigns/{account_id}")
async def list_campaigns(account_id: str, meta_token: Optional[str] = Query(None)):
    client = create_meta_client(_require_token(meta_token))
    campaigns = await _meta_call(client.get_campaigns(account_id), "campaigns")
    return {"success": True, "data": campaigns}


@router.get("/adsets/{account_id}")
async def list_ad_sets(account_id: str, meta_token: Optional[str] = Query(None)):
    client = create_meta_client(_require_token(meta_token))
    ad_sets = await _meta_call(client.get_ad_sets(account_id), "ad sets")
    return {"success": True, "data": ad_sets}


@router.get("/ads/{account_id}")
async def list_ads(account_id: str, meta_token: Optional[str] = Query(None)):
    client = create_meta_client(_require_token(meta_token))
    ads = await _meta_call(client.get_ads(account_id), "ads")
    return {"success": True, "data": ads}


@router.get("/insights/{account_id}")
async def list_insights(
    account_id: str,
    meta_token: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    level: str = Query("campaign"),
):
    """Insights for a date range, or Meta's last_30d preset when no range is given."""
    client = create_meta_client(_require_token(meta_token))
    if start_date and end_date:
        call = client.get_insights_by_date_range(account_id, start_date, end_date, level)
    else:
        call = client.get_insights(account_id, "last_30d", level)
    insights = await _meta_call(call, "insights")
    return {"success": True, "data": insights}


@router.post("/all")
async def fetch_all(body: MetaAllRequest):
    """Accounts plus campaigns, ad sets, ads and ad-level insights for every account."""
    client = create_meta_client(_require_token(body.meta_token))
    data = await _meta_call(client.get_all_data(body.start_date, body.end_date), "Meta data")
    return {"success": True, **data}
