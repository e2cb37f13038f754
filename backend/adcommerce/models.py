"""
Domain models — Meta Ads entities, Trendyol brand-offer reports, and the
combined per-campaign records produced by reconciliation.

All models are immutable and request-scoped: they are built from upstream
payloads at the start of a pass and discarded afterwards.
"""

import logging
from enum import Enum
from typing import Any, Iterable, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from adcommerce.utils import safe_float, safe_int

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# ── Meta Ads ───────────────────────────────────────────────────────────

class _MetaModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")


class Campaign(_MetaModel):
    id: str
    name: str = ""
    status: Optional[str] = None
    objective: Optional[str] = None
    created_time: Optional[str] = None
    start_time: Optional[str] = None
    stop_time: Optional[str] = None
    daily_budget: Optional[str] = None
    lifetime_budget: Optional[str] = None

    @field_validator("id", "daily_budget", "lifetime_budget", mode="before")
    @classmethod
    def stringify(cls, v):
        return str(v) if isinstance(v, (int, float)) else v

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v):
        return "" if v is None else v


class InsightAction(_MetaModel):
    action_type: str
    value: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def stringify(cls, v):
        return str(v) if isinstance(v, (int, float)) else v


class Insight(_MetaModel):
    """One Graph API insights row. Numeric fields stay string-encoded, as Meta sends them."""

    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    ad_id: Optional[str] = None
    ad_name: Optional[str] = None
    impressions: Optional[str] = None
    clicks: Optional[str] = None
    spend: Optional[str] = None
    reach: Optional[str] = None
    cpc: Optional[str] = None
    cpm: Optional[str] = None
    ctr: Optional[str] = None
    date_start: Optional[str] = None
    date_stop: Optional[str] = None
    actions: Optional[list[InsightAction]] = None

    @field_validator(
        "campaign_id", "adset_id", "ad_id", "impressions", "clicks", "spend",
        "reach", "cpc", "cpm", "ctr", mode="before",
    )
    @classmethod
    def stringify(cls, v):
        return str(v) if isinstance(v, (int, float)) else v


# ── Trendyol ───────────────────────────────────────────────────────────

class _TrendyolModel(BaseModel):
    """Trendyol payloads are camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Promotion(_TrendyolModel):
    title: str = ""
    kind: str = ""


class Advert(_TrendyolModel):
    advert_id: str = ""
    start_date: int = 0
    end_date: int = 0
    rate_amount: float = 0.0
    advert_kind: str = ""
    status: str = ""
    link_to_share: str = ""
    badge_id: int = 0
    promotion: Optional[Promotion] = None

    @field_validator("rate_amount", mode="before")
    @classmethod
    def coerce_float(cls, v: Any) -> float:
        return safe_float(v)

    @field_validator("start_date", "end_date", "badge_id", mode="before")
    @classmethod
    def coerce_int(cls, v: Any) -> int:
        return safe_int(v)

    @field_validator("advert_id", mode="before")
    @classmethod
    def stringify(cls, v):
        return "" if v is None else str(v)


class Income(_TrendyolModel):
    internal_link_direct_income: float = 0.0
    internal_link_indirect_income: float = 0.0
    external_link_income: float = 0.0
    cancelled_income: float = 0.0
    cut_off_income: float = 0.0
    net_income: float = 0.0
    net_seller_bonus: float = 0.0

    @field_validator("*", mode="before")
    @classmethod
    def coerce_float(cls, v: Any) -> float:
        return safe_float(v)


class Revenue(_TrendyolModel):
    internal_link_direct_revenue: float = 0.0
    internal_link_indirect_revenue: float = 0.0
    external_link_revenue: float = 0.0
    cancelled_revenue: float = 0.0
    cut_off_revenue: float = 0.0
    net_revenue: float = 0.0

    @field_validator("*", mode="before")
    @classmethod
    def coerce_float(cls, v: Any) -> float:
        return safe_float(v)


class OrderItem(_TrendyolModel):
    net_order_item_count: int = 0
    net_internal_link_order_item_count: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def coerce_int(cls, v: Any) -> int:
        return safe_int(v)


class Trx(_TrendyolModel):
    bulk_trx_count: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def coerce_int(cls, v: Any) -> int:
        return safe_int(v)


class Owner(_TrendyolModel):
    id: int
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def stringify(cls, v):
        return "" if v is None else str(v)


class CommerceReport(_TrendyolModel):
    """A Trendyol brand-offer report row, owned by exactly one brand/seller."""

    session: int = 0
    advert: Advert = Field(default_factory=Advert)
    income: Income = Field(default_factory=Income)
    revenue: Revenue = Field(default_factory=Revenue)
    order_item: OrderItem = Field(default_factory=OrderItem)
    trx: Trx = Field(default_factory=Trx)
    owner: Owner
    currency: str = "TRY"

    @field_validator("session", mode="before")
    @classmethod
    def coerce_int(cls, v: Any) -> int:
        return safe_int(v)


# ── Reconciliation ─────────────────────────────────────────────────────

class ManualMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    campaign_id: str
    owner_id: int

    @field_validator("campaign_id", mode="before")
    @classmethod
    def stringify(cls, v):
        return str(v) if isinstance(v, (int, float)) else v


class MatchType(str, Enum):
    MANUAL = "manual"
    NAMING = "naming"
    LINK = "link"  # reserved: ad-creative URL matching is not implemented
    NONE = "none"


class NamingMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner_id: int
    owner_name: str
    confidence: float


class CampaignMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    campaign_id: str
    campaign_name: str
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None
    match_type: MatchType
    confidence: float = Field(ge=0, le=100)


class CombinedMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Meta Ads
    meta_spend: float = 0.0
    meta_impressions: int = 0
    meta_clicks: int = 0
    meta_reach: int = 0
    meta_ctr: float = 0.0
    meta_cpc: float = 0.0

    # Trendyol
    trendyol_net_income: float = 0.0
    trendyol_net_revenue: float = 0.0
    trendyol_orders: int = 0
    trendyol_commission_rate: float = 0.0

    # Combined
    roas: float = 0.0  # revenue / spend
    roi: float = 0.0  # (income - spend) / spend * 100
    cost_per_order: float = 0.0
    profit_margin: float = 0.0


class CombinedRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    mapping: CampaignMapping
    campaign: Campaign
    insights: list[Insight] = Field(default_factory=list)
    reports: list[CommerceReport] = Field(default_factory=list)
    metrics: CombinedMetrics


class OwnerOption(BaseModel):
    id: int
    name: str


def parse_records(model: type[ModelT], rows: Iterable[Any]) -> list[ModelT]:
    """
    Validate upstream rows into `model`, skipping rows that cannot be parsed
    (e.g. a report without an owner) so one bad row never sinks the batch.
    """
    parsed = []
    skipped = 0
    for row in rows:
        try:
            parsed.append(row if isinstance(row, model) else model.model_validate(row))
        except ValidationError as e:
            skipped += 1
            logger.debug(f"Dropping invalid {model.__name__} row: {e}")
    if skipped:
        logger.warning(f"Skipped {skipped} invalid {model.__name__} row(s)")
    return parsed
