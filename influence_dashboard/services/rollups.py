from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete
from sqlmodel import select

from ..config import Settings, settings as default_settings
from ..models.rollup import RollupStatus, SupporterJurisdictionRollup, TimeSeriesRollup
from ..models.viewpoint_group import ViewpointGroup
from .context import RequestContext, new_context
from .jurisdictions import SUPPORTER_ROLLUP_NAME, DirectJoinStrategy
from .network import first_acquisitions
from .store import RelationStore
from .timeseries import PERIOD_TYPES, bucket_series, period_end

logger = logging.getLogger(__name__)

TIME_SERIES_ROLLUP_NAME = "time_series_supporters"


@dataclass(frozen=True)
class RefreshResult:
    groups: int
    jurisdiction_rows: int
    time_series_rows: int
    refreshed_at: datetime


def _jurisdiction_rows(ctx: RequestContext, group_id: str) -> List[SupporterJurisdictionRollup]:
    mapping = DirectJoinStrategy().load(ctx, [group_id])
    rows: List[SupporterJurisdictionRollup] = []
    for jurisdiction_id, supporters in mapping.items():
        for profile_id, created_at in supporters.first_seen.items():
            rows.append(
                SupporterJurisdictionRollup(
                    viewpoint_group_id=group_id,
                    jurisdiction_id=jurisdiction_id,
                    profile_id=profile_id,
                    created_at=created_at,
                    last_seen_at=supporters.last_seen.get(profile_id),
                )
            )
    return rows


def _time_series_rows(ctx: RequestContext, group_id: str) -> List[TimeSeriesRollup]:
    events = first_acquisitions(ctx, [group_id]).values()
    rows: List[TimeSeriesRollup] = []
    for period_type in PERIOD_TYPES:
        for point in bucket_series(events, period_type, window_days=ctx.settings.active_window_days):
            rows.append(
                TimeSeriesRollup(
                    viewpoint_group_id=group_id,
                    period_type=period_type,
                    period=point.period,
                    period_end=period_end(point.period, period_type),
                    new_supporters=point.new_supporters,
                    cumulative_supporters=point.cumulative_supporters,
                    active_supporters=point.active_supporters,
                )
            )
    return rows


def refresh_rollups(
    store: RelationStore,
    cfg: Optional[Settings] = None,
    *,
    now: Optional[datetime] = None,
) -> RefreshResult:
    """
    Rebuild both precomputed views from raw relations, per viewpoint group,
    and stamp their RollupStatus markers.

    Notes:
    - Reads go through the store (retry + batching), one group at a time.
    - The rewrite itself is a single transaction: readers never see a
      half-refreshed view.
    """
    cfg = cfg or default_settings
    ctx = new_context(store, cfg, now=now)

    group_ids = store.all(select(ViewpointGroup.id), label="rollups:groups")
    jurisdiction_rows: List[SupporterJurisdictionRollup] = []
    series_rows: List[TimeSeriesRollup] = []
    for group_id in group_ids:
        jurisdiction_rows.extend(_jurisdiction_rows(ctx, group_id))
        series_rows.extend(_time_series_rows(ctx, group_id))

    with store.write_session() as db:
        db.execute(delete(SupporterJurisdictionRollup))
        db.execute(delete(TimeSeriesRollup))
        db.add_all(jurisdiction_rows)
        db.add_all(series_rows)

        for name, count in (
            (SUPPORTER_ROLLUP_NAME, len(jurisdiction_rows)),
            (TIME_SERIES_ROLLUP_NAME, len(series_rows)),
        ):
            status = db.get(RollupStatus, name) or RollupStatus(name=name)
            status.refreshed_at = ctx.now
            status.row_count = count
            db.add(status)

    logger.info(
        "rollups refreshed: groups=%d jurisdiction_rows=%d time_series_rows=%d",
        len(group_ids),
        len(jurisdiction_rows),
        len(series_rows),
    )
    return RefreshResult(
        groups=len(group_ids),
        jurisdiction_rows=len(jurisdiction_rows),
        time_series_rows=len(series_rows),
        refreshed_at=ctx.now,
    )
