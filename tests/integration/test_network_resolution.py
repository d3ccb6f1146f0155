"""
Viewpoint-group network resolution against the seeded store.
"""

import pytest

from conftest import G_DEEP, G_LONELY, G_OTHER, G_SUB, NOW, ROOT, ts
from influence_dashboard.config import NetworkDepth
from influence_dashboard.models import ProfileGroupRelation
from influence_dashboard.services.context import RequestContext
from influence_dashboard.services.network import (
    first_acquisitions,
    get_viewpoint_group,
    list_viewpoint_groups,
    resolve_network,
)
from influence_dashboard.services.store import RelationStore


@pytest.mark.integration
class TestResolveNetwork:
    def test_one_hop_adds_groups_led_by_root_supporters(self, ctx):
        assert resolve_network(ctx, ROOT) == {ROOT, G_SUB}

    def test_unconnected_groups_stay_out(self, ctx):
        network = resolve_network(ctx, ROOT)
        assert G_OTHER not in network
        assert G_DEEP not in network

    def test_group_without_supporters_is_just_itself(self, ctx):
        assert resolve_network(ctx, G_LONELY) == {G_LONELY}

    def test_unknown_group_is_just_itself(self, ctx):
        assert resolve_network(ctx, "no-such-group") == {"no-such-group"}

    def test_transitive_depth_finds_leaders_of_leaders(self, ctx):
        assert resolve_network(ctx, ROOT, depth=NetworkDepth.TRANSITIVE) == {ROOT, G_SUB, G_DEEP}

    def test_transitive_depth_from_settings(self, store, settings, seeded):
        cfg = settings.model_copy(update={"network_depth": NetworkDepth.TRANSITIVE})
        ctx = RequestContext(store=store, settings=cfg, now=NOW)
        assert resolve_network(ctx, ROOT) == {ROOT, G_SUB, G_DEEP}

    def test_transitive_walk_terminates_on_cycles(self, ctx, add_rows):
        # p5 (supporter of G_DEEP) leads ROOT: G_DEEP -> ROOT closes a loop
        add_rows(ProfileGroupRelation(profile_id="p5", viewpoint_group_id=ROOT, type="leader", created_at=ts(2024, 1, 1)))
        assert resolve_network(ctx, ROOT, depth=NetworkDepth.TRANSITIVE) == {ROOT, G_SUB, G_DEEP}

    def test_root_supporter_leading_root_is_not_a_sub_group(self, ctx, add_rows):
        add_rows(ProfileGroupRelation(profile_id="p1", viewpoint_group_id=ROOT, type="leader", created_at=ts(2024, 1, 1)))
        assert resolve_network(ctx, ROOT) == {ROOT, G_SUB}

    def test_tiny_batches_give_same_network(self, engine, settings, seeded):
        ctx = RequestContext(store=RelationStore(engine, batch_size=1), settings=settings, now=NOW)
        assert resolve_network(ctx, ROOT) == {ROOT, G_SUB}

    def test_network_is_memoised_per_request(self, ctx):
        resolve_network(ctx, ROOT)
        assert ("network", ROOT, "one_hop") in ctx.cache


@pytest.mark.integration
class TestSupporterRows:
    def test_earliest_acquisition_wins_across_groups(self, ctx):
        first = first_acquisitions(ctx, {ROOT, G_SUB})
        assert set(first) == {"p1", "p2", "p3", "p4"}
        assert first["p3"] == ts(2024, 5, 20)

    def test_timestamps_come_back_as_utc(self, ctx):
        first = first_acquisitions(ctx, {ROOT})
        assert all(v.tzinfo is not None for v in first.values())


@pytest.mark.integration
class TestViewpointGroups:
    def test_list(self, ctx):
        ids = {g.id for g in list_viewpoint_groups(ctx)}
        assert ids == {ROOT, G_SUB, G_DEEP, G_OTHER, G_LONELY}

    def test_get(self, ctx):
        assert get_viewpoint_group(ctx, ROOT).id == ROOT
        assert get_viewpoint_group(ctx, "missing") is None
