"""
Tests for the Meta Graph API client against a mocked transport.
"""

import json
import pytest
import httpx

from adcommerce.meta_client import MetaAdsClient, MetaAPIError

API_BASE = "https://graph.test/v21.0"


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _client(handler, **kwargs) -> MetaAdsClient:
    return MetaAdsClient(
        "tok",
        api_base=API_BASE,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _error(code: int, message: str, status: int = 400) -> httpx.Response:
    return httpx.Response(
        status, json={"error": {"message": message, "code": code, "type": "OAuthException"}}
    )


def test_meta_api_error_message():
    err = MetaAPIError("Invalid OAuth access token.", 190, "OAuthException")
    assert str(err) == "Meta API Error: Invalid OAuth access token. (Code: 190, Type: OAuthException)"
    assert str(MetaAPIError("boom")) == "Meta API Error: boom"


def test_token_is_cleaned():
    client = MetaAdsClient("  EAAB\nxyz \t123  ", api_base=API_BASE)
    assert client.access_token == "EAABxyz123"


@pytest.mark.anyio
async def test_pagination_follows_paging_next():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        if "after" not in request.url.params:
            return httpx.Response(200, json={
                "data": [{"id": "1", "name": "A"}, {"id": "2", "name": "B"}],
                "paging": {"next": f"{API_BASE}/act_1/campaigns?after=cursor1&access_token=tok"},
            })
        return httpx.Response(200, json={"data": [{"id": "3", "name": "C"}], "paging": {}})

    campaigns = await _client(handler, page_limit=2).get_campaigns("act_1")

    assert [c["id"] for c in campaigns] == ["1", "2", "3"]
    assert len(seen) == 2
    first, second = seen
    assert first.path == "/v21.0/act_1/campaigns"
    assert first.params["access_token"] == "tok"
    assert first.params["limit"] == "2"
    assert "fields" in first.params
    # The next URL is used as-is, without re-adding our params
    assert second.params["after"] == "cursor1"
    assert "fields" not in second.params


@pytest.mark.anyio
async def test_error_payload_raises_meta_api_error():
    def handler(request):
        return _error(190, "Invalid OAuth access token.")

    with pytest.raises(MetaAPIError) as exc_info:
        await _client(handler).get_ad_accounts()
    assert exc_info.value.code == 190
    assert exc_info.value.error_type == "OAuthException"


@pytest.mark.anyio
async def test_non_json_error_raises_http_error():
    def handler(request):
        return httpx.Response(503, text="upstream down")

    with pytest.raises(httpx.HTTPStatusError):
        await _client(handler).get_ad_accounts()


@pytest.mark.anyio
async def test_insights_by_date_range_params():
    captured = {}

    def handler(request):
        captured.update(request.url.params)
        return httpx.Response(200, json={"data": [{"campaign_id": "1", "spend": "100"}]})

    rows = await _client(handler, insights_limit=500).get_insights_by_date_range(
        "act_9", "2024-01-01", "2024-01-31", level="ad"
    )
    assert rows == [{"campaign_id": "1", "spend": "100"}]
    assert json.loads(captured["time_range"]) == {"since": "2024-01-01", "until": "2024-01-31"}
    assert captured["level"] == "ad"
    assert captured["limit"] == "500"
    assert "date_preset" not in captured


@pytest.mark.anyio
async def test_get_all_data_skips_failing_account():
    def handler(request):
        path = request.url.path
        if path.endswith("/me/adaccounts"):
            return httpx.Response(200, json={"data": [{"id": "act_1"}, {"id": "act_2"}]})
        if path.startswith("/v21.0/act_2/campaigns"):
            return _error(200, "Permissions error", status=403)
        if path.endswith("/campaigns"):
            return httpx.Response(200, json={"data": [{"id": "c1", "name": "Karaca_Home"}]})
        if path.endswith("/insights"):
            assert request.url.params["level"] == "ad"
            return httpx.Response(200, json={"data": [{"campaign_id": "c1", "spend": "1000"}]})
        return httpx.Response(200, json={"data": []})

    data = await _client(handler).get_all_data("2024-01-01", "2024-01-31")

    assert [a["id"] for a in data["ad_accounts"]] == ["act_1", "act_2"]
    assert data["campaigns"] == [{"id": "c1", "name": "Karaca_Home"}]
    assert data["insights"] == [{"campaign_id": "c1", "spend": "1000"}]
    assert data["ad_sets"] == []
    assert data["ads"] == []


@pytest.mark.anyio
async def test_get_me():
    def handler(request):
        assert request.url.path == "/v21.0/me"
        return httpx.Response(200, json={"id": "42", "name": "Ada"})

    assert await _client(handler).get_me() == {"id": "42", "name": "Ada"}
