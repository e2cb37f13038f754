"""
Reports Router — Trendyol brand-offer reports for a date range.
"""

import logging
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
import httpx

from adcommerce.models import CommerceReport, parse_records
from adcommerce.trendyol_client import create_trendyol_client, TrendyolAPIError
from adcommerce.utils import safe_error_detail

logger = logging.getLogger(__name__)
router = APIRouter()


class ReportRequest(BaseModel):
    start_date: int = Field(description="Unix seconds")
    end_date: int = Field(description="Unix seconds")
    trendyol_token: str


class ReportResponse(BaseModel):
    success: bool = True
    total_count: int
    brand_offer_reports: list[CommerceReport]


@router.post("", response_model=ReportResponse)
async def fetch_reports(body: ReportRequest):
    """Fetch every brand-offer report page for the range."""
    if not body.trendyol_token.strip():
        raise HTTPException(status_code=400, detail="Trendyol token is required")
    if body.start_date > body.end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")

    client = create_trendyol_client(body.trendyol_token)
    try:
        raw = await client.fetch_all_reports(body.start_date, body.end_date)
    except TrendyolAPIError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except httpx.HTTPError as e:
        raise HTTPException(status_code=502, detail=f"Trendyol API unreachable: {e}")
    except Exception as e:
        raise HTTPException(status_code=500, detail=safe_error_detail(e, "Failed to fetch reports"))

    reports = parse_records(CommerceReport, raw)
    return ReportResponse(total_count=len(reports), brand_offer_reports=reports)
