from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.engine import Engine

from ..config import Settings, settings as default_settings
from ..models.common import utcnow
from ..models.viewpoint_group import ViewpointGroup
from ..schemas import (
    ElectionDetail,
    ElectionInfluence,
    JurisdictionInfluence,
    PeriodType,
    StateDistribution,
    SummaryMetrics,
    TimeSeriesPoint,
    ViewpointGroupNetwork,
)
from . import ballots, jurisdictions, network, summary, timeseries
from .context import RequestContext
from .store import RelationStore

logger = logging.getLogger(__name__)


class DashboardQueries:
    """
    Consumer-facing query surface.

    Every call builds a fresh RequestContext (own cache, own "now"), so one
    instance is safe to share between concurrent requests. An omitted
    viewpoint_group_id means the configured root group.
    """

    def __init__(
        self,
        store: RelationStore,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.settings = settings or default_settings
        self.clock = clock or utcnow

    @classmethod
    def from_engine(cls, engine: Engine, settings: Optional[Settings] = None) -> "DashboardQueries":
        cfg = settings or default_settings
        return cls(RelationStore.from_settings(engine, cfg), cfg)

    def context(self) -> RequestContext:
        return RequestContext(store=self.store, settings=self.settings, now=self.clock())

    def _root(self, viewpoint_group_id: Optional[str]) -> str:
        return viewpoint_group_id or self.settings.root_viewpoint_group_id

    def _scope(self, viewpoint_group_id: Optional[str]):
        ctx = self.context()
        return ctx, network.resolve_network(ctx, self._root(viewpoint_group_id))

    # -------------------------
    # Viewpoint groups
    # -------------------------

    def list_viewpoint_groups(self) -> List[ViewpointGroup]:
        return network.list_viewpoint_groups(self.context())

    def get_viewpoint_group(self, group_id: str) -> Optional[ViewpointGroup]:
        return network.get_viewpoint_group(self.context(), group_id)

    def get_network(self, viewpoint_group_id: Optional[str] = None) -> ViewpointGroupNetwork:
        root = self._root(viewpoint_group_id)
        _ctx, ids = self._scope(root)
        return ViewpointGroupNetwork(
            primary_group_id=root,
            sub_group_ids=sorted(ids - {root}),
            all_group_ids=[root] + sorted(ids - {root}),
        )

    # -------------------------
    # Elections
    # -------------------------

    def get_upcoming_elections(
        self, days_ahead: Optional[int] = None, viewpoint_group_id: Optional[str] = None
    ) -> List[ElectionInfluence]:
        ctx, ids = self._scope(viewpoint_group_id)
        days = self.settings.default_days_ahead if days_ahead is None else days_ahead
        return ballots.upcoming_elections(ctx, days, ids)

    def get_election_detail(
        self, election_id: str, viewpoint_group_id: Optional[str] = None
    ) -> Optional[ElectionDetail]:
        ctx, ids = self._scope(viewpoint_group_id)
        return ballots.election_detail(ctx, election_id, ids)

    # -------------------------
    # Jurisdictions
    # -------------------------

    def get_jurisdictions_with_influence(self, viewpoint_group_id: Optional[str] = None) -> List[JurisdictionInfluence]:
        ctx, ids = self._scope(viewpoint_group_id)
        return jurisdictions.jurisdictions_with_influence(ctx, ids)

    def get_state_distribution(self, viewpoint_group_id: Optional[str] = None) -> List[StateDistribution]:
        ctx, ids = self._scope(viewpoint_group_id)
        return jurisdictions.state_distribution(ctx, ids)

    # -------------------------
    # Supporters over time
    # -------------------------

    def get_supporter_growth_time_series(
        self, period: PeriodType = "monthly", viewpoint_group_id: Optional[str] = None
    ) -> List[TimeSeriesPoint]:
        ctx, ids = self._scope(viewpoint_group_id)
        return timeseries.growth_series(ctx, period, ids)

    def get_total_supporter_count(self, viewpoint_group_id: Optional[str] = None) -> int:
        ctx, ids = self._scope(viewpoint_group_id)
        return timeseries.total_supporter_count(ctx, ids)

    def get_active_supporter_count(self, viewpoint_group_id: Optional[str] = None) -> int:
        ctx, ids = self._scope(viewpoint_group_id)
        return timeseries.active_supporter_count(ctx, ids)

    # -------------------------
    # Summary
    # -------------------------

    def get_summary(self, viewpoint_group_id: Optional[str] = None) -> SummaryMetrics:
        ctx, ids = self._scope(viewpoint_group_id)
        return summary.dashboard_summary(ctx, ids)
