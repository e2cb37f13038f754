"""
Meta Graph API Client
Fetches ad accounts, campaigns, ad sets, ads and insights for a user access token.
List endpoints follow the Graph API `paging.next` cursor until it runs out.
"""

import json
import logging
from typing import Any, Optional
import httpx

from adcommerce.config import get_settings
from adcommerce.utils import clean_token, gather_or_cancel

logger = logging.getLogger(__name__)

AD_ACCOUNT_FIELDS = "id,name,account_status,currency,amount_spent"
CAMPAIGN_FIELDS = "id,name,status,objective,created_time,start_time,stop_time,daily_budget,lifetime_budget"
AD_SET_FIELDS = "id,name,status,campaign_id,daily_budget,lifetime_budget"
AD_FIELDS = "id,name,status,adset_id,campaign_id,created_time"
INSIGHT_FIELDS = (
    "campaign_id,campaign_name,adset_id,adset_name,ad_id,ad_name,"
    "impressions,clicks,spend,reach,cpc,cpm,ctr,actions"
)


class MetaAPIError(Exception):
    """Graph API error carrying Meta's own message, code and type."""

    def __init__(self, message: str, code: Optional[int] = None, error_type: Optional[str] = None):
        self.message = message
        self.code = code
        self.error_type = error_type
        detail = f"Meta API Error: {message}"
        if code is not None:
            detail += f" (Code: {code}" + (f", Type: {error_type})" if error_type else ")")
        super().__init__(detail)

    @classmethod
    def from_response(cls, response: httpx.Response) -> Optional["MetaAPIError"]:
        try:
            payload = response.json()
        except ValueError:
            return None
        err = payload.get("error") if isinstance(payload, dict) else None
        if not isinstance(err, dict):
            return None
        return cls(err.get("message", "Unknown error"), err.get("code"), err.get("type"))


class MetaAdsClient:
    """
    Thin async wrapper around the Graph API endpoints the dashboard needs.
    Each instance is bound to one access token.
    """

    def __init__(
        self,
        access_token: str,
        api_base: Optional[str] = None,
        page_limit: Optional[int] = None,
        insights_limit: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.access_token = clean_token(access_token)
        self.api_base = (api_base or settings.meta_api_base).rstrip("/")
        self.page_limit = page_limit or settings.meta_page_limit
        self.insights_limit = insights_limit or settings.meta_insights_limit
        self.timeout = timeout or settings.http_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _get(self, client: httpx.AsyncClient, url: str, params: Optional[dict] = None) -> dict:
        response = await client.get(url, params=params)
        if response.is_error:
            meta_error = MetaAPIError.from_response(response)
            if meta_error:
                logger.error(
                    f"Meta API error on {url}: {meta_error.message} "
                    f"(code={meta_error.code}, type={meta_error.error_type})"
                )
                raise meta_error
            response.raise_for_status()
        return response.json()

    async def _paginated_get(self, path: str, params: dict[str, Any]) -> list[dict]:
        """
        Fetch every page of a Graph API edge. The first request carries our
        params; subsequent pages use Meta's `paging.next` URL verbatim (it
        already embeds the token and cursor).
        """
        all_items: list[dict] = []
        url: Optional[str] = f"{self.api_base}/{path.lstrip('/')}"
        page_params: Optional[dict] = {**params, "access_token": self.access_token}
        page = 0

        async with self._client() as client:
            while url:
                payload = await self._get(client, url, page_params)
                items = payload.get("data") or []
                all_items.extend(items)
                page += 1
                url = (payload.get("paging") or {}).get("next")
                page_params = None

        logger.info(f"meta {path}: {len(all_items)} items in {page} page(s)")
        return all_items

    # ── Edges ─────────────────────────────────────────────────────────

    async def get_me(self) -> dict:
        """Validate the token against /me."""
        async with self._client() as client:
            return await self._get(
                client,
                f"{self.api_base}/me",
                {"access_token": self.access_token, "fields": "id,name"},
            )

    async def get_ad_accounts(self) -> list[dict]:
        return await self._paginated_get(
            "me/adaccounts", {"fields": AD_ACCOUNT_FIELDS, "limit": self.page_limit}
        )

    async def get_campaigns(self, ad_account_id: str) -> list[dict]:
        return await self._paginated_get(
            f"{ad_account_id}/campaigns", {"fields": CAMPAIGN_FIELDS, "limit": self.page_limit}
        )

    async def get_ad_sets(self, ad_account_id: str) -> list[dict]:
        return await self._paginated_get(
            f"{ad_account_id}/adsets", {"fields": AD_SET_FIELDS, "limit": self.page_limit}
        )

    async def get_ads(self, ad_account_id: str) -> list[dict]:
        return await self._paginated_get(
            f"{ad_account_id}/ads", {"fields": AD_FIELDS, "limit": self.page_limit}
        )

    async def get_insights(
        self,
        ad_account_id: str,
        date_preset: str = "last_30d",
        level: str = "campaign",
    ) -> list[dict]:
        return await self._paginated_get(
            f"{ad_account_id}/insights",
            {
                "fields": INSIGHT_FIELDS,
                "date_preset": date_preset,
                "level": level,
                "limit": self.insights_limit,
            },
        )

    async def get_insights_by_date_range(
        self,
        ad_account_id: str,
        start_date: str,
        end_date: str,
        level: str = "campaign",
    ) -> list[dict]:
        return await self._paginated_get(
            f"{ad_account_id}/insights",
            {
                "fields": INSIGHT_FIELDS,
                "time_range": json.dumps({"since": start_date, "until": end_date}),
                "level": level,
                "limit": self.insights_limit,
            },
        )

    async def get_all_data(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict:
        """
        Fetch campaigns, ad sets, ads and ad-level insights for every ad account.
        Accounts are walked in order; the four edges of one account are fetched
        concurrently. An account that fails is logged and skipped.
        """
        ad_accounts = await self.get_ad_accounts()
        result = {
            "ad_accounts": ad_accounts,
            "campaigns": [],
            "ad_sets": [],
            "ads": [],
            "insights": [],
        }

        for account in ad_accounts:
            account_id = account["id"]
            if start_date and end_date:
                insights_call = self.get_insights_by_date_range(account_id, start_date, end_date, "ad")
            else:
                insights_call = self.get_insights(account_id, "last_30d", "ad")
            try:
                campaigns, ad_sets, ads, insights = await gather_or_cancel(
                    self.get_campaigns(account_id),
                    self.get_ad_sets(account_id),
                    self.get_ads(account_id),
                    insights_call,
                )
            except (MetaAPIError, httpx.HTTPError) as e:
                logger.warning(f"Skipping ad account {account_id}: {e}")
                continue

            result["campaigns"].extend(campaigns)
            result["ad_sets"].extend(ad_sets)
            result["ads"].extend(ads)
            result["insights"].extend(insights)

        logger.info(
            f"meta all-data: {len(ad_accounts)} accounts, {len(result['campaigns'])} campaigns, "
            f"{len(result['insights'])} insight rows"
        )
        return result


def create_meta_client(access_token: str) -> MetaAdsClient:
    """Factory using settings from the environment."""
    return MetaAdsClient(access_token=access_token)
