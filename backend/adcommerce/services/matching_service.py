"""
Matching Service — Pairs Meta campaigns with Trendyol owners by name.

Campaigns are usually named after the brand they promote
("Karaca_Home_Promo"), so the owner whose normalized name is embedded in the
normalized campaign name is the best guess. Scores are 0–100.
"""

import logging
import re
from typing import Iterable, Optional

from adcommerce.models import Campaign, CommerceReport, NamingMatch

logger = logging.getLogger(__name__)

# Owners must score above this to be considered at all
MIN_CANDIDATE_CONFIDENCE = 30.0

_NON_ALNUM = re.compile(r"[^a-z0-9çğıöşü]")
_WHITESPACE = re.compile(r"\s+")

# Turkish letters are kept by the strip and folded afterwards
TURKISH_FOLDS = (
    ("ı", "i"),
    ("ğ", "g"),
    ("ü", "u"),
    ("ş", "s"),
    ("ö", "o"),
    ("ç", "c"),
)


def normalize(text: str) -> str:
    """Lower-case, drop everything but [a-z0-9] and Turkish letters, then fold the Turkish letters."""
    result = _NON_ALNUM.sub("", (text or "").lower())
    for letter, base in TURKISH_FOLDS:
        result = result.replace(letter, base)
    return result


def similarity(a: str, b: str) -> float:
    """
    Score two (normalized) strings 0–100.

    Containment wins: if the shorter string occurs inside the longer one the
    score is their length ratio. Otherwise fall back to whitespace-separated
    word overlap, counting each word of `a` at most once.
    """
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)

    if len(longer) == 0:
        return 100.0

    if shorter in longer:
        return len(shorter) / len(longer) * 100

    words1 = _WHITESPACE.split(a)
    words2 = _WHITESPACE.split(b)
    matches = 0
    for w1 in words1:
        for w2 in words2:
            if w1 == w2 or w2 in w1 or w1 in w2:
                matches += 1
                break

    return matches / max(len(words1), len(words2)) * 100


def unique_owners(reports: Iterable[CommerceReport]) -> dict[int, str]:
    """Owner id -> name in first-seen order. The first name seen for an id wins."""
    owners: dict[int, str] = {}
    for report in reports:
        owners.setdefault(report.owner.id, report.owner.name)
    return owners


def match_by_naming(
    campaign: Campaign,
    reports: Iterable[CommerceReport],
) -> Optional[NamingMatch]:
    """
    Find the owner whose name best matches the campaign name.

    Returns the highest-scoring owner above MIN_CANDIDATE_CONFIDENCE, or None.
    Ties keep the owner seen first. Callers apply their own acceptance floor.
    """
    normalized_campaign = normalize(campaign.name)

    best: Optional[NamingMatch] = None
    for owner_id, owner_name in unique_owners(reports).items():
        confidence = similarity(normalized_campaign, normalize(owner_name))
        if confidence > MIN_CANDIDATE_CONFIDENCE and (best is None or confidence > best.confidence):
            best = NamingMatch(owner_id=owner_id, owner_name=owner_name, confidence=confidence)

    if best:
        logger.debug(
            f"match_by_naming({campaign.id}): owner {best.owner_id} at {best.confidence:.1f}"
        )
    return best
