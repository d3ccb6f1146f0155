from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..schemas import SummaryMetrics
from ..services.queries import DashboardQueries
from .deps import get_queries

router = APIRouter(prefix="/summary", tags=["summary"])


@router.get("", response_model=SummaryMetrics)
def get_summary(
    viewpoint_group_id: Optional[str] = Query(None),
    queries: DashboardQueries = Depends(get_queries),
) -> SummaryMetrics:
    return queries.get_summary(viewpoint_group_id)
