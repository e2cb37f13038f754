"""
Reconciliation Service — Builds the combined Meta × Trendyol view.

For every Meta campaign: resolve a Trendyol owner (manual mapping first, then
naming match), collect the campaign's insights and the owner's reports, and
compute combined metrics. The pass is pure: inputs are never mutated and no
state survives between calls, so it is re-run from scratch whenever manual
mappings change.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional, Sequence

from adcommerce.models import (
    Campaign, CampaignMapping, CombinedMetrics, CombinedRecord, CommerceReport,
    Insight, ManualMapping, MatchType, OwnerOption,
)
from adcommerce.services.matching_service import match_by_naming, unique_owners
from adcommerce.services.metrics_service import calculate_combined_metrics

logger = logging.getLogger(__name__)

# Naming matches below this are reported as unmatched rather than applied
MIN_NAMING_CONFIDENCE = 50.0
UNKNOWN_OWNER_NAME = "Unknown"


def _group_insights(insights: Iterable[Insight]) -> dict[str, list[Insight]]:
    grouped: dict[str, list[Insight]] = defaultdict(list)
    for insight in insights:
        # Orphaned rows (no campaign_id) belong to no campaign
        if insight.campaign_id:
            grouped[insight.campaign_id].append(insight)
    return grouped


def _group_reports(reports: Iterable[CommerceReport]) -> dict[int, list[CommerceReport]]:
    grouped: dict[int, list[CommerceReport]] = defaultdict(list)
    for report in reports:
        grouped[report.owner.id].append(report)
    return grouped


def reconcile(
    campaigns: Sequence[Campaign],
    insights: Sequence[Insight],
    reports: Sequence[CommerceReport],
    manual_mappings: Sequence[ManualMapping] = (),
) -> list[CombinedRecord]:
    """
    Produce one CombinedRecord per campaign, in campaign order.

    Manual mappings always win (confidence 100). Otherwise a naming match is
    applied only at MIN_NAMING_CONFIDENCE or above; everything else is
    reported with match_type "none" and zero commerce metrics.
    """
    # Last mapping for a campaign wins
    manual = {m.campaign_id: m.owner_id for m in manual_mappings}
    insights_by_campaign = _group_insights(insights)
    reports_by_owner = _group_reports(reports)

    records = []
    for campaign in campaigns:
        matched_reports: list[CommerceReport] = []

        if campaign.id in manual:
            owner_id = manual[campaign.id]
            matched_reports = list(reports_by_owner.get(owner_id, []))
            owner_name = matched_reports[0].owner.name if matched_reports else UNKNOWN_OWNER_NAME
            mapping = CampaignMapping(
                campaign_id=campaign.id,
                campaign_name=campaign.name,
                owner_id=owner_id,
                owner_name=owner_name,
                match_type=MatchType.MANUAL,
                confidence=100,
            )
        else:
            naming = match_by_naming(campaign, reports)
            if naming and naming.confidence >= MIN_NAMING_CONFIDENCE:
                mapping = CampaignMapping(
                    campaign_id=campaign.id,
                    campaign_name=campaign.name,
                    owner_id=naming.owner_id,
                    owner_name=naming.owner_name,
                    match_type=MatchType.NAMING,
                    confidence=naming.confidence,
                )
                matched_reports = list(reports_by_owner.get(naming.owner_id, []))
            else:
                mapping = CampaignMapping(
                    campaign_id=campaign.id,
                    campaign_name=campaign.name,
                    match_type=MatchType.NONE,
                    confidence=0,
                )

        campaign_insights = list(insights_by_campaign.get(campaign.id, []))
        records.append(CombinedRecord(
            mapping=mapping,
            campaign=campaign,
            insights=campaign_insights,
            reports=matched_reports,
            metrics=calculate_combined_metrics(campaign_insights, matched_reports),
        ))

    logger.info(
        f"reconcile: {len(records)} campaigns, "
        f"{sum(1 for r in records if r.mapping.match_type != MatchType.NONE)} matched, "
        f"{len(manual)} manual mappings"
    )
    return records


# ── View helpers ──────────────────────────────────────────────────────

def summarize(records: Sequence[CombinedRecord]) -> CombinedMetrics:
    """
    Grand totals across every record's insights and reports.
    An owner matched to several campaigns contributes its reports once per campaign.
    """
    return calculate_combined_metrics(
        [i for r in records for i in r.insights],
        [rep for r in records for rep in r.reports],
    )


def unmatched(records: Iterable[CombinedRecord]) -> list[CombinedRecord]:
    return [r for r in records if r.mapping.match_type == MatchType.NONE]


def owner_options(reports: Iterable[CommerceReport]) -> list[OwnerOption]:
    """Distinct owners for the manual-mapping picker, sorted by name."""
    owners = unique_owners(reports)
    return sorted(
        (OwnerOption(id=owner_id, name=name) for owner_id, name in owners.items()),
        key=lambda o: o.name.casefold(),
    )


def set_manual_mapping(
    mappings: Sequence[ManualMapping],
    campaign_id: str,
    owner_id: Optional[int],
) -> list[ManualMapping]:
    """Return a new mapping list with the campaign re-pointed to `owner_id`, or unmapped when None."""
    updated = [m for m in mappings if m.campaign_id != campaign_id]
    if owner_id is not None:
        updated.append(ManualMapping(campaign_id=campaign_id, owner_id=owner_id))
    return updated
