from __future__ import annotations

import calendar
import logging
from bisect import bisect_left, bisect_right
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List

from sqlmodel import select

from ..config import TimeSeriesMergeMode
from ..models.rollup import TimeSeriesRollup
from ..schemas import PeriodType, TimeSeriesPoint
from .context import RequestContext
from .network import first_acquisitions, network_supporter_rows, sorted_network

logger = logging.getLogger(__name__)

PERIOD_TYPES = ("daily", "weekly", "monthly")


def period_key(day: date, period_type: str) -> str:
    """
    monthly "2024-04", weekly ISO "2024-W15" (the week's Thursday decides the
    year, so 2021-01-01 is "2020-W53"), daily "2024-04-09".
    """
    if period_type == "monthly":
        return f"{day.year:04d}-{day.month:02d}"
    if period_type == "weekly":
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    if period_type == "daily":
        return day.isoformat()
    raise ValueError(f"unknown period type: {period_type!r}")


def period_end(key: str, period_type: str) -> date:
    """
    Last day of the month, Sunday of the ISO week, or the day itself.
    """
    if period_type == "monthly":
        year, month = (int(part) for part in key.split("-"))
        return date(year, month, calendar.monthrange(year, month)[1])
    if period_type == "weekly":
        year, week = key.split("-W")
        return date.fromisocalendar(int(year), int(week), 7)
    if period_type == "daily":
        return date.fromisoformat(key)
    raise ValueError(f"unknown period type: {period_type!r}")


def bucket_series(
    events: Iterable[datetime],
    period_type: str,
    *,
    window_days: int = 30,
) -> List[TimeSeriesPoint]:
    """
    Bucket acquisition timestamps (one per supporter) into periods.

    active_supporters counts every event dated within
    [period_end - window_days, period_end], inclusive, not only the
    period's own events.
    """
    days = sorted(ts.date() for ts in events if ts is not None)
    if not days:
        return []

    counts: Dict[str, int] = {}
    for day in days:
        key = period_key(day, period_type)
        counts[key] = counts.get(key, 0) + 1

    points: List[TimeSeriesPoint] = []
    cumulative = 0
    for key in sorted(counts):
        end = period_end(key, period_type)
        start = end - timedelta(days=window_days)
        cumulative += counts[key]
        points.append(
            TimeSeriesPoint(
                date=end.isoformat(),
                period=key,
                new_supporters=counts[key],
                cumulative_supporters=cumulative,
                active_supporters=bisect_right(days, end) - bisect_left(days, start),
            )
        )
    return points


def merge_rollup_series(rows: Iterable[TimeSeriesRollup]) -> List[TimeSeriesPoint]:
    """
    Approximate multi-group merge of precomputed per-group buckets:
    new is summed, active is the max, cumulative is re-run over the sum.
    Over-counts profiles that support more than one group in the network.
    """
    merged: Dict[str, Dict] = {}
    for row in rows:
        slot = merged.setdefault(row.period, {"end": row.period_end, "new": 0, "active": 0})
        slot["new"] += int(row.new_supporters or 0)
        slot["active"] = max(slot["active"], int(row.active_supporters or 0))

    points: List[TimeSeriesPoint] = []
    cumulative = 0
    for key in sorted(merged):
        slot = merged[key]
        cumulative += slot["new"]
        points.append(
            TimeSeriesPoint(
                date=slot["end"].isoformat(),
                period=key,
                new_supporters=slot["new"],
                cumulative_supporters=cumulative,
                active_supporters=slot["active"],
            )
        )
    return points


def _rollup_rows(ctx: RequestContext, period_type: str, network_ids: List[str]) -> List[TimeSeriesRollup]:
    return ctx.store.in_batches(
        network_ids,
        lambda batch: select(TimeSeriesRollup)
        .where(TimeSeriesRollup.viewpoint_group_id.in_(batch))
        .where(TimeSeriesRollup.period_type == period_type),
        label="timeseries:rollup",
    )


def growth_series(ctx: RequestContext, period_type: PeriodType, network_ids: Iterable[str]) -> List[TimeSeriesPoint]:
    """
    Supporter acquisitions per period for the network.

    Exact path (default): dedupe by profile (earliest relation wins), then
    bucket. Approximate path only when configured and rollup rows exist.
    """
    if period_type not in PERIOD_TYPES:
        raise ValueError(f"unknown period type: {period_type!r}")
    ids = sorted_network(network_ids)

    if TimeSeriesMergeMode(ctx.settings.timeseries_merge_mode) == TimeSeriesMergeMode.APPROXIMATE:
        rows = _rollup_rows(ctx, period_type, ids)
        if rows:
            return merge_rollup_series(rows)
        logger.info("no %s time-series rollup rows for network; using exact path", period_type)

    acquisitions = first_acquisitions(ctx, ids)
    return bucket_series(acquisitions.values(), period_type, window_days=ctx.settings.active_window_days)


def total_supporter_count(ctx: RequestContext, network_ids: Iterable[str]) -> int:
    """
    Distinct supporter profiles across the network.
    """
    return len({pid for pid, _gid, _ts in network_supporter_rows(ctx, network_ids)})


def active_supporter_count(ctx: RequestContext, network_ids: Iterable[str]) -> int:
    """
    Distinct profiles with a supporter relation created inside the active window.
    """
    since = ctx.active_window_start
    return len(
        {pid for pid, _gid, ts in network_supporter_rows(ctx, network_ids) if ts is not None and ts >= since}
    )
