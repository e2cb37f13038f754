"""
Trendyol Influencer Center Client
Fetches brand-offer reports (income, revenue and orders per brand owner)
page by page for a unix-timestamp date range.
"""

import logging
from typing import Optional
import httpx

from adcommerce.config import get_settings

logger = logging.getLogger(__name__)

# The endpoint only answers requests that look like the influencer-center web client
CLIENT_HEADERS = {
    "content-type": "application/json",
    "x-agent-origin": "client",
    "x-agent-name": "web-report",
    "accept": "*/*",
    "culture": "tr-TR",
    "origin": "https://influencercenter.trendyol.com",
    "user-agent": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 18_6_2 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) Mobile/15E148"
    ),
    "x-platform": "IOS",
}


class TrendyolAPIError(Exception):
    """Raised when the brand-offer report endpoint answers with an HTTP error."""

    def __init__(self, status_code: Optional[int], reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"Trendyol API error: {status_code} - {reason}")


class TrendyolClient:
    def __init__(
        self,
        token: str,
        report_url: Optional[str] = None,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.token = token.strip()
        self.report_url = report_url or settings.trendyol_report_url
        self.page_size = page_size or settings.trendyol_page_size
        self.max_pages = max_pages or settings.trendyol_max_pages
        self.timeout = timeout or settings.http_timeout
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {**CLIENT_HEADERS, "authorization": f"bearer {self.token}"}

    async def fetch_all_reports(self, start_date: int, end_date: int) -> list[dict]:
        """
        Walk pages from 0 until a page comes back empty or shorter than the
        page size. `start_date` / `end_date` are unix seconds.
        """
        all_reports: list[dict] = []
        page = 0

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            while page < self.max_pages:
                response = await client.get(
                    self.report_url,
                    params={
                        "page": page,
                        "size": self.page_size,
                        "startDate": start_date,
                        "endDate": end_date,
                        "profitedOffers": "false",
                        "sortingType": "DATE_DESC",
                    },
                    headers=self.headers,
                )
                if response.is_error:
                    logger.error(
                        f"Trendyol report fetch failed on page {page}: "
                        f"{response.status_code} {response.reason_phrase}"
                    )
                    raise TrendyolAPIError(response.status_code, response.reason_phrase)

                reports = (response.json() or {}).get("brandOfferReports") or []
                if not reports:
                    break
                all_reports.extend(reports)
                page += 1
                logger.info(f"trendyol page {page}: {len(reports)} reports (total so far: {len(all_reports)})")

                if len(reports) < self.page_size:
                    break
            else:
                logger.warning(f"trendyol pagination stopped at max_pages={self.max_pages}")

        logger.info(f"trendyol reports complete: {len(all_reports)} total in {page} page(s)")
        return all_reports


def create_trendyol_client(token: str) -> TrendyolClient:
    return TrendyolClient(token=token)
