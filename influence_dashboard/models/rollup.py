from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .common import utcnow


class SupporterJurisdictionRollup(SQLModel, table=True):
    """
    Precomputed supporter -> jurisdiction mapping (one row per group,
    jurisdiction and profile), carrying the profile's earliest supporter
    relation to that group (created_at) and its latest one (last_seen_at).
    """

    __tablename__ = "mv_supporters_by_jurisdiction"

    viewpoint_group_id: str = Field(primary_key=True)
    jurisdiction_id: str = Field(primary_key=True, index=True)
    profile_id: str = Field(primary_key=True, index=True)

    created_at: Optional[datetime] = Field(default=None, index=True)
    last_seen_at: Optional[datetime] = Field(default=None)


class TimeSeriesRollup(SQLModel, table=True):
    """
    Precomputed per-group growth buckets (daily / weekly / monthly).
    """

    __tablename__ = "mv_time_series_supporters"

    viewpoint_group_id: str = Field(primary_key=True)
    period_type: str = Field(primary_key=True, max_length=16)
    period: str = Field(primary_key=True, max_length=16)

    period_end: date = Field(index=True)

    new_supporters: int = Field(default=0)
    cumulative_supporters: int = Field(default=0)
    active_supporters: int = Field(default=0)


class RollupStatus(SQLModel, table=True):
    """
    Freshness marker written by the rollup refresher.
    """

    __tablename__ = "rollup_status"

    name: str = Field(primary_key=True, max_length=64)
    refreshed_at: datetime = Field(default_factory=utcnow)
    row_count: int = Field(default=0)
