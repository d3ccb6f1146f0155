from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from ..schemas import JurisdictionInfluence, StateDistribution
from ..services.queries import DashboardQueries
from .deps import get_queries

router = APIRouter(prefix="/jurisdictions", tags=["jurisdictions"])

SortField = Literal["supporter_share", "supporter_count", "active_rate", "growth_30d", "name"]


def sort_jurisdictions(
    rows: List[JurisdictionInfluence],
    sort_by: str = "supporter_share",
    order: str = "desc",
) -> List[JurisdictionInfluence]:
    """
    Rows with no value for the sort field always go last, whatever the order.
    """
    present = [r for r in rows if getattr(r, sort_by) is not None]
    missing = [r for r in rows if getattr(r, sort_by) is None]

    def _key(r: JurisdictionInfluence):
        value = getattr(r, sort_by)
        return value.lower() if isinstance(value, str) else value

    present.sort(key=_key, reverse=(order == "desc"))
    return present + missing


@router.get("", response_model=List[JurisdictionInfluence])
def list_jurisdictions(
    sort_by: SortField = Query("supporter_share"),
    order: Literal["asc", "desc"] = Query("desc"),
    viewpoint_group_id: Optional[str] = Query(None),
    queries: DashboardQueries = Depends(get_queries),
) -> List[JurisdictionInfluence]:
    rows = queries.get_jurisdictions_with_influence(viewpoint_group_id)
    return sort_jurisdictions(rows, sort_by, order)


@router.get("/states", response_model=List[StateDistribution])
def list_states(
    viewpoint_group_id: Optional[str] = Query(None),
    queries: DashboardQueries = Depends(get_queries),
) -> List[StateDistribution]:
    return queries.get_state_distribution(viewpoint_group_id)
