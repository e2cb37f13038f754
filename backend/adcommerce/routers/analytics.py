"""
Analytics Router — Combined Meta Ads × Trendyol campaign performance.

/combined fetches both upstreams concurrently and reconciles them.
/reconcile re-runs reconciliation over data the caller already holds, which
is what the dashboard calls whenever a manual mapping changes.
"""

import logging
from typing import Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
import httpx

from adcommerce.config import get_settings
from adcommerce.meta_client import create_meta_client, MetaAPIError
from adcommerce.models import (
    Campaign, CombinedMetrics, CombinedRecord, CommerceReport, Insight,
    ManualMapping, OwnerOption, parse_records,
)
from adcommerce.services.reconciliation_service import (
    reconcile, summarize, unmatched, owner_options,
)
from adcommerce.trendyol_client import create_trendyol_client, TrendyolAPIError
from adcommerce.utils import (
    clean_token, date_to_unix_timestamp, gather_or_cancel, resolve_date_range,
    safe_error_detail,
)

logger = logging.getLogger(__name__)
router = APIRouter()


# ── Schemas ───────────────────────────────────────────────────────────

class CombinedRequest(BaseModel):
    trendyol_token: str
    meta_token: str
    start_date: Optional[str] = None  # YYYY-MM-DD, defaults to 30 days ago
    end_date: Optional[str] = None  # YYYY-MM-DD, defaults to today
    manual_mappings: list[ManualMapping] = Field(default_factory=list)
    unmatched_only: bool = False


class ReconcileRequest(BaseModel):
    campaigns: list[Campaign]
    insights: list[Insight] = Field(default_factory=list)
    reports: list[CommerceReport] = Field(default_factory=list)
    manual_mappings: list[ManualMapping] = Field(default_factory=list)
    unmatched_only: bool = False


class OwnersRequest(BaseModel):
    reports: list[CommerceReport] = Field(default_factory=list)


class CombinedResponse(BaseModel):
    success: bool = True
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    records: list[CombinedRecord]
    totals: CombinedMetrics
    owners: list[OwnerOption]
    matched_count: int
    unmatched_count: int


def _build_response(
    records: list[CombinedRecord],
    reports: list[CommerceReport],
    unmatched_only: bool,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> CombinedResponse:
    # Totals always cover every campaign, even when the listing is filtered
    missing = unmatched(records)
    return CombinedResponse(
        start_date=start_date,
        end_date=end_date,
        records=missing if unmatched_only else records,
        totals=summarize(records),
        owners=owner_options(reports),
        matched_count=len(records) - len(missing),
        unmatched_count=len(missing),
    )


# ── Endpoints ─────────────────────────────────────────────────────────

@router.post("/combined", response_model=CombinedResponse)
async def combined_analytics(body: CombinedRequest):
    """Fetch Trendyol reports and Meta data in parallel, then reconcile per campaign."""
    trendyol_token = body.trendyol_token.strip()
    meta_token = clean_token(body.meta_token)
    if not trendyol_token or not meta_token:
        raise HTTPException(status_code=400, detail="Both Trendyol and Meta tokens are required")

    try:
        start, end = resolve_date_range(body.start_date, body.end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date range: {e}")

    tz = get_settings().report_timezone
    trendyol = create_trendyol_client(trendyol_token)
    meta = create_meta_client(meta_token)

    try:
        raw_reports, meta_data = await gather_or_cancel(
            trendyol.fetch_all_reports(
                date_to_unix_timestamp(start, tz=tz),
                date_to_unix_timestamp(end, end_of_day=True, tz=tz),
            ),
            meta.get_all_data(start.isoformat(), end.isoformat()),
        )
    except (TrendyolAPIError, MetaAPIError) as e:
        raise HTTPException(status_code=502, detail=str(e))
    except httpx.HTTPError as e:
        raise HTTPException(status_code=502, detail=f"Upstream API unreachable: {e}")
    except Exception as e:
        raise HTTPException(status_code=500, detail=safe_error_detail(e, "Failed to fetch data"))

    reports = parse_records(CommerceReport, raw_reports)
    records = reconcile(
        parse_records(Campaign, meta_data["campaigns"]),
        parse_records(Insight, meta_data["insights"]),
        reports,
        body.manual_mappings,
    )
    return _build_response(
        records, reports, body.unmatched_only, start.isoformat(), end.isoformat()
    )


@router.post("/reconcile", response_model=CombinedResponse)
async def reconcile_supplied(body: ReconcileRequest):
    """Reconcile already-fetched data. Safe to call after every manual-mapping change."""
    records = reconcile(body.campaigns, body.insights, body.reports, body.manual_mappings)
    return _build_response(records, body.reports, body.unmatched_only)


@router.post("/owners", response_model=list[OwnerOption])
async def list_owners(body: OwnersRequest):
    """Distinct Trendyol owners of the supplied reports, sorted by name."""
    return owner_options(body.reports)
