from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..schemas import ElectionDetail, ElectionInfluence
from ..services.queries import DashboardQueries
from .deps import get_queries

router = APIRouter(prefix="/elections", tags=["elections"])


@router.get("", response_model=List[ElectionInfluence])
def list_upcoming_elections(
    days_ahead: int = Query(90, ge=0, le=3650),
    viewpoint_group_id: Optional[str] = Query(None),
    queries: DashboardQueries = Depends(get_queries),
) -> List[ElectionInfluence]:
    return queries.get_upcoming_elections(days_ahead, viewpoint_group_id)


@router.get("/{election_id}", response_model=ElectionDetail)
def get_election(
    election_id: str,
    viewpoint_group_id: Optional[str] = Query(None),
    queries: DashboardQueries = Depends(get_queries),
) -> ElectionDetail:
    detail = queries.get_election_detail(election_id, viewpoint_group_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Election not found")
    return detail
