from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..schemas import ViewpointGroupNetwork, ViewpointGroupOut
from ..services.queries import DashboardQueries
from .deps import get_queries

router = APIRouter(prefix="/viewpoint-groups", tags=["viewpoint-groups"])


def _to_out(group) -> ViewpointGroupOut:
    return ViewpointGroupOut(
        id=group.id,
        title=group.title,
        description=group.description,
        is_public=group.is_public,
        is_searchable=group.is_searchable,
        created_at=group.created_at,
    )


@router.get("", response_model=List[ViewpointGroupOut])
def list_viewpoint_groups(queries: DashboardQueries = Depends(get_queries)) -> List[ViewpointGroupOut]:
    return [_to_out(g) for g in queries.list_viewpoint_groups()]


@router.get("/{group_id}", response_model=ViewpointGroupOut)
def get_viewpoint_group(group_id: str, queries: DashboardQueries = Depends(get_queries)) -> ViewpointGroupOut:
    group = queries.get_viewpoint_group(group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Viewpoint group not found")
    return _to_out(group)


@router.get("/{group_id}/network", response_model=ViewpointGroupNetwork)
def get_viewpoint_group_network(
    group_id: str,
    queries: DashboardQueries = Depends(get_queries),
) -> ViewpointGroupNetwork:
    return queries.get_network(group_id)
