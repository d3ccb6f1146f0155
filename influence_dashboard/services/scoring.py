from __future__ import annotations

from typing import Iterable, List, Optional

from sqlmodel import select

from ..models.influence_target import InfluenceTargetGroupRelation
from ..models.jurisdiction import JurisdictionLevel
from .context import RequestContext
from .network import sorted_network

# Fixed turnout used by per-ballot-item scoring and the per-jurisdiction
# election proxy. Turnout is not modeled.
BALLOT_ITEM_TURNOUT = 10_000

TURNOUT_BY_LEVEL = {
    JurisdictionLevel.COUNTRY: 150_000_000,
    JurisdictionLevel.STATE: 5_000_000,
    JurisdictionLevel.COUNTY: 500_000,
    JurisdictionLevel.CITY: 50_000,
    JurisdictionLevel.DISTRICT: 10_000,
}
DEFAULT_TURNOUT = 10_000

DEFAULT_HIGH_LEVERAGE_THRESHOLD = 5.0


def estimate_turnout(level: Optional[str]) -> int:
    """
    Static per-level turnout estimate; unknown / missing levels get 10,000.
    """
    try:
        key = JurisdictionLevel((level or "").strip().lower())
    except ValueError:
        return DEFAULT_TURNOUT
    return TURNOUT_BY_LEVEL[key]


def supporter_share(supporter_count: int, turnout: Optional[float]) -> Optional[float]:
    """
    Percentage (0-100 scale, may exceed 100 for tiny turnouts). None when
    turnout is unusable.
    """
    if not turnout or turnout <= 0:
        return None
    return (supporter_count / turnout) * 100


def election_share_in_scope(supporters_in_scope: int, jurisdiction_count: int) -> Optional[float]:
    """
    Election-level share: each distinct jurisdiction on the ballot counts as
    10,000 voters.
    """
    return supporter_share(supporters_in_scope, jurisdiction_count * BALLOT_ITEM_TURNOUT)


def is_high_leverage(share: Optional[float], threshold: float = DEFAULT_HIGH_LEVERAGE_THRESHOLD) -> bool:
    return share is not None and share >= threshold


def alignment_weight(weights: Iterable[Optional[float]]) -> float:
    """
    Mean leader-assigned weight, capped at 1. Missing / negative weights
    count as 0; no rows means no alignment.
    """
    values: List[float] = []
    for w in weights:
        try:
            values.append(max(0.0, float(w)) if w is not None else 0.0)
        except (TypeError, ValueError):
            values.append(0.0)
    if not values:
        return 0.0
    return min(sum(values) / len(values), 1.0)


def influence_score(supporter_count: int, weight: float) -> float:
    """
    50% supporter share (against the fixed 10,000 turnout) + 50% alignment,
    clamped to [0, 100].
    """
    share = max(0, supporter_count) / BALLOT_ITEM_TURNOUT
    score = share * 50 + weight * 50
    return min(max(score, 0.0), 100.0)


def load_alignment_weight(ctx: RequestContext, influence_target_id: str, network_ids: Iterable[str]) -> float:
    ids = sorted_network(network_ids)

    def _load() -> float:
        def _stmt(batch: List[str]):
            return (
                select(InfluenceTargetGroupRelation.weight)
                .where(InfluenceTargetGroupRelation.influence_target_id == influence_target_id)
                .where(InfluenceTargetGroupRelation.viewpoint_group_id.in_(batch))
            )

        return alignment_weight(ctx.store.in_batches(ids, _stmt, label="scoring:alignment"))

    return ctx.cache.get_or_compute(("alignment", influence_target_id, tuple(ids)), _load)


def score_ballot_item(
    ctx: RequestContext,
    supporter_count: int,
    influence_target_id: Optional[str],
    network_ids: Iterable[str],
) -> float:
    """
    Score for one ballot item. Items without an influence target score 0.
    """
    if not influence_target_id:
        return 0.0
    weight = load_alignment_weight(ctx, influence_target_id, network_ids)
    return influence_score(supporter_count, weight)
