from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from sqlmodel import select

from ..config import NetworkDepth
from ..models.common import as_utc
from ..models.viewpoint_group import ProfileGroupRelation, RelationType, ViewpointGroup
from .context import RequestContext

logger = logging.getLogger(__name__)

# (profile_id, viewpoint_group_id, created_at)
SupporterRow = Tuple[str, str, Optional[datetime]]


def supporter_profile_ids(ctx: RequestContext, group_id: str) -> List[str]:
    stmt = (
        select(ProfileGroupRelation.profile_id)
        .where(ProfileGroupRelation.viewpoint_group_id == group_id)
        .where(ProfileGroupRelation.type == RelationType.SUPPORTER.value)
    )
    return [pid for pid in ctx.store.all(stmt, label="network:supporters") if pid]


def groups_led_by(ctx: RequestContext, profile_ids: Iterable[str], *, exclude_group_id: str) -> Set[str]:
    """
    Groups (other than exclude_group_id) where any of profile_ids is a leader.
    Batched; a failed batch is skipped by the store.
    """

    def _stmt(batch: List[str]):
        return (
            select(ProfileGroupRelation.viewpoint_group_id)
            .where(ProfileGroupRelation.profile_id.in_(batch))
            .where(ProfileGroupRelation.type == RelationType.LEADER.value)
            .where(ProfileGroupRelation.viewpoint_group_id != exclude_group_id)
        )

    rows = ctx.store.in_batches(profile_ids, _stmt, label="network:sub_groups")
    return {gid for gid in rows if gid}


def _walk(ctx: RequestContext, root_group_id: str, depth: NetworkDepth) -> FrozenSet[str]:
    network: Set[str] = {root_group_id}
    frontier = deque([root_group_id])

    while frontier:
        group_id = frontier.popleft()

        supporters = supporter_profile_ids(ctx, group_id)
        if not supporters:
            continue

        for led in groups_led_by(ctx, supporters, exclude_group_id=group_id):
            if led in network:
                # already visited (also stops cycles back to an ancestor)
                continue
            network.add(led)
            if depth == NetworkDepth.TRANSITIVE:
                frontier.append(led)

    logger.debug("network for %s (%s): %d groups", root_group_id, depth.value, len(network))
    return frozenset(network)


def resolve_network(
    ctx: RequestContext,
    root_group_id: str,
    *,
    depth: Optional[NetworkDepth] = None,
) -> FrozenSet[str]:
    """
    The root group plus every group led by one of its supporters.

    With depth=TRANSITIVE the walk continues through each discovered group's
    supporters until no new group appears (visited set guards cycles).
    Memoised on the request context.
    """
    depth = NetworkDepth(depth or ctx.settings.network_depth)
    key = ("network", root_group_id, depth.value)
    return ctx.cache.get_or_compute(key, lambda: _walk(ctx, root_group_id, depth))


def sorted_network(network_ids: Iterable[str]) -> List[str]:
    """
    Deterministic sequence for callers that need one (IN filters, logging).
    """
    return sorted(set(network_ids))


def network_supporter_rows(ctx: RequestContext, network_ids: Iterable[str]) -> List[SupporterRow]:
    """
    Raw supporter relations for every group in the network, memoised.
    """
    ids = sorted_network(network_ids)

    def _load() -> List[SupporterRow]:
        def _stmt(batch: List[str]):
            return (
                select(
                    ProfileGroupRelation.profile_id,
                    ProfileGroupRelation.viewpoint_group_id,
                    ProfileGroupRelation.created_at,
                )
                .where(ProfileGroupRelation.viewpoint_group_id.in_(batch))
                .where(ProfileGroupRelation.type == RelationType.SUPPORTER.value)
                .order_by(ProfileGroupRelation.created_at)
            )

        rows = ctx.store.in_batches(ids, _stmt, label="network:supporter_rows")
        return [(pid, gid, as_utc(created)) for pid, gid, created in rows if pid]

    return ctx.cache.get_or_compute(("supporter_rows", tuple(ids)), _load)


def first_acquisitions(ctx: RequestContext, network_ids: Iterable[str]) -> Dict[str, Optional[datetime]]:
    """
    profile_id -> earliest supporter relation inside the network.
    This is the dedupe point: a profile supporting several network groups
    is one supporter acquired once.
    """
    first: Dict[str, Optional[datetime]] = {}
    for profile_id, _group_id, created_at in network_supporter_rows(ctx, network_ids):
        current = first.get(profile_id)
        if profile_id not in first or (created_at is not None and (current is None or created_at < current)):
            first[profile_id] = created_at
    return first


def list_viewpoint_groups(ctx: RequestContext) -> List[ViewpointGroup]:
    stmt = select(ViewpointGroup).order_by(ViewpointGroup.created_at.desc())
    return ctx.store.all(stmt, label="viewpoint_groups:list")


def get_viewpoint_group(ctx: RequestContext, group_id: str) -> Optional[ViewpointGroup]:
    return ctx.store.get(ViewpointGroup, group_id, label="viewpoint_groups:get")
