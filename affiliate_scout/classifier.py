from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .config import MatchThresholds
from .matcher import extract_model_token, has_category_term, score_model_mode, text_sim_generic
from .models import Candidate, ListingRow, SearchQuery, Tier


def classify_title(query: str, title: str, thresholds: MatchThresholds = MatchThresholds()) -> Optional[Tier]:
    if extract_model_token(query):
        if score_model_mode(query, title) >= thresholds.model_score_min:
            return Tier.STRICT
        return None

    match, ratio = text_sim_generic(query, title)
    if (match >= thresholds.strict_pair_match and ratio >= thresholds.strict_pair_ratio) or (
        match >= thresholds.strict_single_match and ratio >= thresholds.strict_single_ratio
    ):
        return Tier.STRICT
    if match >= thresholds.soft_match and ratio >= thresholds.soft_ratio:
        return Tier.SOFT
    if has_category_term(query, title):
        return Tier.CATEGORY
    return None


def classify_rows(
    rows: Iterable[ListingRow],
    query: SearchQuery,
    thresholds: MatchThresholds = MatchThresholds(),
) -> Dict[Tier, List[Candidate]]:
    buckets: Dict[Tier, List[Candidate]] = {tier: [] for tier in Tier}
    for row in rows:
        if not row.title:
            continue
        if not query.accepts_price(row.price):
            continue
        tier = classify_title(query.text, row.title, thresholds)
        if tier is None:
            continue
        buckets[tier].append(Candidate.from_row(row, tier))
    return buckets
