from __future__ import annotations

from typing import Dict, List, Sequence, Set, Tuple

from .models import Candidate, RankedItem, Tier


def merge_tiers(
    buckets: Dict[Tier, Sequence[Candidate]],
    *,
    cap: int = 20,
    min_fill: int = 4,
) -> List[Candidate]:
    merged: List[Candidate] = []
    seen: Set[Tuple[str, ...]] = set()

    def push_unique(candidates: Sequence[Candidate]) -> None:
        for candidate in candidates:
            if len(merged) >= cap:
                return
            key = candidate.identity.key
            if key in seen:
                continue
            seen.add(key)
            merged.append(candidate)

    push_unique(buckets.get(Tier.STRICT, ()))
    if len(merged) < min_fill:
        push_unique(buckets.get(Tier.SOFT, ()))
    if len(merged) < min_fill:
        push_unique(buckets.get(Tier.CATEGORY, ()))
    return merged


def ranking_key(candidate: Candidate) -> Tuple[int, int, int]:
    return (-candidate.sold_count, -candidate.commission, candidate.price)


def rank_candidates(
    buckets: Dict[Tier, Sequence[Candidate]],
    *,
    limit: int = 5,
    cap: int = 20,
    min_fill: int = 4,
) -> List[RankedItem]:
    merged = merge_tiers(buckets, cap=cap, min_fill=min_fill)
    ordered = sorted(merged, key=ranking_key)
    return [RankedItem(candidate=candidate) for candidate in ordered[:limit]]
