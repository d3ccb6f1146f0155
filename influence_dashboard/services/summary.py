from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..schemas import JurisdictionInfluence, SummaryMetrics, TopJurisdiction
from .ballots import upcoming_elections
from .context import RequestContext
from .jurisdictions import jurisdictions_with_influence, state_distribution, supporters_by_jurisdiction
from .timeseries import active_supporter_count, total_supporter_count

logger = logging.getLogger(__name__)


def top_jurisdiction(rows: List[JurisdictionInfluence]) -> Optional[TopJurisdiction]:
    """
    Highest supporter_share among rows that have one. Ties keep input order.
    """
    ranked = sorted(
        (r for r in rows if r.supporter_share is not None),
        key=lambda r: r.supporter_share,
        reverse=True,
    )
    if not ranked:
        return None
    best = ranked[0]
    return TopJurisdiction(
        jurisdiction_id=best.jurisdiction_id,
        name=best.name,
        supporter_count=best.supporter_count,
        supporter_share=best.supporter_share,
    )


def dashboard_summary(ctx: RequestContext, network_ids: Iterable[str]) -> SummaryMetrics:
    """
    Headline metrics for the dashboard.

    Notes:
    - The supporter map is loaded once up front; the sub-metrics that fan out
      afterwards all hit the request cache for it.
    - An empty network still yields a valid (all-zero) summary.
    """
    network_ids = list(network_ids)
    supporters_by_jurisdiction(ctx, network_ids)

    total, active, jurisdictions, states, elections = ctx.gather(
        lambda: total_supporter_count(ctx, network_ids),
        lambda: active_supporter_count(ctx, network_ids),
        lambda: jurisdictions_with_influence(ctx, network_ids),
        lambda: state_distribution(ctx, network_ids),
        lambda: upcoming_elections(ctx, ctx.settings.default_days_ahead, network_ids),
    )

    summary = SummaryMetrics(
        total_supporters=total,
        active_supporters=active,
        active_rate=(active / total) * 100 if total > 0 else 0.0,
        top_jurisdiction=top_jurisdiction(jurisdictions),
        top_state=states[0] if states else None,
        high_leverage_elections_count=sum(1 for e in elections if e.is_high_leverage),
        total_ballot_items=sum(e.ballot_items_count for e in elections),
    )
    logger.debug(
        "summary: total=%d active=%d elections=%d jurisdictions=%d",
        total,
        active,
        len(elections),
        len(jurisdictions),
    )
    return summary
