"""
Metrics Service — Reduces Meta insights and Trendyol reports into combined
campaign metrics (spend, revenue, ROAS, ROI, cost per order, margin).
"""

from typing import Sequence

from adcommerce.models import CombinedMetrics, CommerceReport, Insight
from adcommerce.utils import safe_float, safe_int

# Insight spend arrives in minor currency units
SPEND_DIVISOR = 100


def calculate_combined_metrics(
    insights: Sequence[Insight],
    reports: Sequence[CommerceReport],
) -> CombinedMetrics:
    """Aggregate metrics across insight and report subsets. Empty inputs give all-zero metrics."""
    meta_spend = sum(safe_float(i.spend) for i in insights) / SPEND_DIVISOR
    meta_impressions = sum(safe_int(i.impressions) for i in insights)
    meta_clicks = sum(safe_int(i.clicks) for i in insights)
    meta_reach = sum(safe_int(i.reach) for i in insights)
    meta_ctr = (meta_clicks / meta_impressions * 100) if meta_impressions > 0 else 0
    meta_cpc = (meta_spend / meta_clicks) if meta_clicks > 0 else 0

    net_income = sum(r.income.net_income for r in reports)
    net_revenue = sum(r.revenue.net_revenue for r in reports)
    orders = sum(r.order_item.net_order_item_count for r in reports)
    commission_rate = (
        sum(r.advert.rate_amount for r in reports) / len(reports) if reports else 0
    )

    roas = (net_revenue / meta_spend) if meta_spend > 0 else 0
    roi = ((net_income - meta_spend) / meta_spend * 100) if meta_spend > 0 else 0
    cost_per_order = (meta_spend / orders) if orders > 0 else 0
    profit_margin = (net_income / net_revenue * 100) if net_revenue > 0 else 0

    return CombinedMetrics(
        meta_spend=meta_spend,
        meta_impressions=meta_impressions,
        meta_clicks=meta_clicks,
        meta_reach=meta_reach,
        meta_ctr=meta_ctr,
        meta_cpc=meta_cpc,
        trendyol_net_income=net_income,
        trendyol_net_revenue=net_revenue,
        trendyol_orders=orders,
        trendyol_commission_rate=commission_rate,
        roas=roas,
        roi=roi,
        cost_per_order=cost_per_order,
        profit_margin=profit_margin,
    )


aggregate = calculate_combined_metrics
