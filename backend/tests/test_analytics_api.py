"""
Tests for the analytics endpoints: supplied-data reconciliation, owner
listing and the combined fetch with stubbed upstream clients.
"""

import asyncio
import pytest
from httpx import AsyncClient, ASGITransport

from adcommerce.meta_client import MetaAPIError
from adcommerce.routers import analytics
from adcommerce.trendyol_client import TrendyolAPIError

REPORTS = [
    {"owner": {"id": 1, "name": "Mac"}, "revenue": {"netRevenue": 500}, "income": {"netIncome": 50}},
    {"owner": {"id": 2, "name": "Karaca Home"}, "revenue": {"netRevenue": "1000"},
     "income": {"netIncome": 100}, "orderItem": {"netOrderItemCount": 4}},
]
CAMPAIGNS = [
    {"id": "1", "name": "MAC_Traffic_Dec2024"},
    {"id": "2", "name": "Karaca_Home_Promo"},
]
INSIGHTS = [
    {"campaign_id": "1", "spend": "1000", "impressions": "100", "clicks": "5"},
    {"campaign_id": "2", "spend": "5000", "impressions": "400", "clicks": "20"},
]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client(anyio_backend):
    from adcommerce.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
        ac.headers["Authorization"] = f"Bearer {response.json()['access_token']}"
        yield ac


class FakeTrendyol:
    def __init__(self, reports=None, error=None):
        self.reports = reports or []
        self.error = error
        self.calls = []

    async def fetch_all_reports(self, start_date, end_date):
        self.calls.append((start_date, end_date))
        if self.error:
            raise self.error
        return self.reports


class FakeMeta:
    def __init__(self, campaigns=None, insights=None, error=None):
        self.data = {
            "ad_accounts": [{"id": "act_1"}],
            "campaigns": campaigns or [],
            "ad_sets": [],
            "ads": [],
            "insights": insights or [],
        }
        self.error = error
        self.calls = []

    async def get_all_data(self, start_date=None, end_date=None):
        self.calls.append((start_date, end_date))
        if self.error:
            raise self.error
        return self.data


def _patch_clients(monkeypatch, trendyol, meta):
    monkeypatch.setattr(analytics, "create_trendyol_client", lambda token: trendyol)
    monkeypatch.setattr(analytics, "create_meta_client", lambda token: meta)


# ── /reconcile ────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_reconcile_supplied_data(client):
    response = await client.post("/api/analytics/reconcile", json={
        "campaigns": CAMPAIGNS, "insights": INSIGHTS, "reports": REPORTS,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert [r["campaign"]["id"] for r in data["records"]] == ["1", "2"]

    mac, karaca = data["records"]
    assert mac["mapping"]["match_type"] == "none"
    assert karaca["mapping"]["match_type"] == "naming"
    assert karaca["mapping"]["owner_id"] == 2
    assert karaca["metrics"]["trendyol_net_revenue"] == pytest.approx(1000)
    assert karaca["metrics"]["meta_spend"] == pytest.approx(50)
    assert karaca["metrics"]["roas"] == pytest.approx(20)

    assert data["matched_count"] == 1
    assert data["unmatched_count"] == 1
    assert data["totals"]["meta_spend"] == pytest.approx(60)
    assert [o["name"] for o in data["owners"]] == ["Karaca Home", "Mac"]


@pytest.mark.anyio
async def test_reconcile_with_manual_mapping_and_filter(client):
    response = await client.post("/api/analytics/reconcile", json={
        "campaigns": CAMPAIGNS,
        "insights": INSIGHTS,
        "reports": REPORTS,
        "manual_mappings": [{"campaign_id": "1", "owner_id": 1}],
        "unmatched_only": True,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["records"] == []
    assert data["matched_count"] == 2
    assert data["totals"]["trendyol_net_revenue"] == pytest.approx(1500)


@pytest.mark.anyio
async def test_unmatched_only_keeps_totals_for_all_records(client):
    response = await client.post("/api/analytics/reconcile", json={
        "campaigns": CAMPAIGNS, "insights": INSIGHTS, "reports": REPORTS, "unmatched_only": True,
    })
    data = response.json()
    assert [r["campaign"]["id"] for r in data["records"]] == ["1"]
    assert data["totals"]["meta_spend"] == pytest.approx(60)


@pytest.mark.anyio
async def test_owners_sorted_and_deduplicated(client):
    response = await client.post("/api/analytics/owners", json={"reports": REPORTS + REPORTS})
    assert response.status_code == 200
    assert response.json() == [{"id": 2, "name": "Karaca Home"}, {"id": 1, "name": "Mac"}]


# ── /combined ─────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_combined_fetches_and_reconciles(client, monkeypatch):
    trendyol = FakeTrendyol(reports=REPORTS)
    meta = FakeMeta(campaigns=CAMPAIGNS, insights=INSIGHTS)
    _patch_clients(monkeypatch, trendyol, meta)

    response = await client.post("/api/analytics/combined", json={
        "trendyol_token": "t-token",
        "meta_token": "m-token",
        "start_date": "2024-12-01",
        "end_date": "2024-12-31",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["start_date"] == "2024-12-01"
    assert data["end_date"] == "2024-12-31"
    assert len(data["records"]) == 2
    assert data["matched_count"] == 1

    assert meta.calls == [("2024-12-01", "2024-12-31")]
    # Europe/Istanbul is UTC+3: midnight local is 21:00 UTC the day before
    assert trendyol.calls == [(1733000400, 1735678799)]


@pytest.mark.anyio
async def test_combined_requires_both_tokens(client):
    response = await client.post("/api/analytics/combined", json={
        "trendyol_token": "t-token", "meta_token": "   ",
    })
    assert response.status_code == 400


@pytest.mark.anyio
async def test_combined_rejects_inverted_dates(client, monkeypatch):
    _patch_clients(monkeypatch, FakeTrendyol(), FakeMeta())
    response = await client.post("/api/analytics/combined", json={
        "trendyol_token": "t", "meta_token": "m",
        "start_date": "2024-12-31", "end_date": "2024-12-01",
    })
    assert response.status_code == 400


@pytest.mark.anyio
@pytest.mark.parametrize("trendyol_error, meta_error", [
    (TrendyolAPIError(401, "Unauthorized"), None),
    (None, MetaAPIError("Invalid OAuth access token.", 190, "OAuthException")),
])
async def test_combined_upstream_errors_are_bad_gateway(client, monkeypatch, trendyol_error, meta_error):
    _patch_clients(
        monkeypatch,
        FakeTrendyol(reports=REPORTS, error=trendyol_error),
        FakeMeta(campaigns=CAMPAIGNS, error=meta_error),
    )
    response = await client.post("/api/analytics/combined", json={
        "trendyol_token": "t", "meta_token": "m",
    })
    assert response.status_code == 502
    assert "API" in response.json()["detail"]


@pytest.mark.anyio
async def test_combined_skips_malformed_rows(client, monkeypatch):
    _patch_clients(
        monkeypatch,
        FakeTrendyol(reports=REPORTS + [{"revenue": {"netRevenue": 1}}]),  # no owner
        FakeMeta(campaigns=CAMPAIGNS + [{"name": "no id"}], insights=INSIGHTS),
    )
    response = await client.post("/api/analytics/combined", json={
        "trendyol_token": "t", "meta_token": "m",
    })
    assert response.status_code == 200
    assert len(response.json()["records"]) == 2


# ── /reports ──────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_reports_endpoint(client, monkeypatch):
    from adcommerce.routers import reports
    monkeypatch.setattr(reports, "create_trendyol_client", lambda token: FakeTrendyol(reports=REPORTS))

    response = await client.post("/api/reports", json={
        "start_date": 1700000000, "end_date": 1700086399, "trendyol_token": "t",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["total_count"] == 2
    assert data["brand_offer_reports"][1]["owner"]["name"] == "Karaca Home"


@pytest.mark.anyio
async def test_reports_endpoint_validates_input(client):
    response = await client.post("/api/reports", json={
        "start_date": 2, "end_date": 1, "trendyol_token": "t",
    })
    assert response.status_code == 400


@pytest.mark.anyio
async def test_reconcile_accepts_numeric_ids_in_manual_mappings(client):
    response = await client.post("/api/analytics/reconcile", json={
        "campaigns": [{"id": 120, "name": "Spring_Launch"}],
        "reports": REPORTS,
        "manual_mappings": [{"campaign_id": 120, "owner_id": 1}],
    })
    assert response.status_code == 200
    record = response.json()["records"][0]
    assert record["campaign"]["id"] == "120"
    assert record["mapping"]["match_type"] == "manual"
    assert record["mapping"]["owner_name"] == "Mac"


@pytest.mark.anyio
async def test_reconcile_keeps_campaign_with_null_name(client):
    response = await client.post("/api/analytics/reconcile", json={
        "campaigns": CAMPAIGNS + [{"id": "3", "name": None}],
        "insights": INSIGHTS,
        "reports": REPORTS,
    })
    assert response.status_code == 200
    records = response.json()["records"]
    assert [r["campaign"]["id"] for r in records] == ["1", "2", "3"]
    assert records[2]["mapping"]["match_type"] == "none"


class SlowMeta(FakeMeta):
    def __init__(self):
        super().__init__()
        self.cancelled = False

    async def get_all_data(self, start_date=None, end_date=None):
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return self.data


@pytest.mark.anyio
async def test_combined_cancels_other_fetch_when_one_fails(client, monkeypatch):
    meta = SlowMeta()
    _patch_clients(monkeypatch, FakeTrendyol(error=TrendyolAPIError(500, "Internal Server Error")), meta)

    response = await client.post("/api/analytics/combined", json={
        "trendyol_token": "t", "meta_token": "m",
    })
    assert response.status_code == 502
    assert meta.cancelled is True
