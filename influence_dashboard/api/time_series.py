from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..schemas import PeriodType, TimeSeriesData
from ..services.queries import DashboardQueries
from .deps import get_queries

router = APIRouter(prefix="/time-series", tags=["time-series"])


@router.get("", response_model=TimeSeriesData)
def get_time_series(
    period: PeriodType = Query("monthly"),
    viewpoint_group_id: Optional[str] = Query(None),
    queries: DashboardQueries = Depends(get_queries),
) -> TimeSeriesData:
    points = queries.get_supporter_growth_time_series(period, viewpoint_group_id)
    return TimeSeriesData(data=points, period_type=period)
