"""
The consumer-facing query facade.
"""

import pytest

from conftest import E1, G_DEEP, G_LONELY, G_SUB, ROOT


@pytest.mark.integration
class TestDashboardQueries:
    def test_omitted_group_means_configured_root(self, queries):
        assert queries.get_total_supporter_count() == queries.get_total_supporter_count(ROOT) == 4

    def test_network(self, queries):
        network = queries.get_network()
        assert network.primary_group_id == ROOT
        assert network.sub_group_ids == [G_SUB]
        assert network.all_group_ids == [ROOT, G_SUB]

    def test_sub_group_network(self, queries):
        network = queries.get_network(G_SUB)
        assert network.all_group_ids == [G_SUB, G_DEEP]

    def test_every_call_gets_a_fresh_context(self, queries):
        assert queries.context().cache is not queries.context().cache

    def test_elections(self, queries):
        assert [e.election_id for e in queries.get_upcoming_elections()] == [E1]
        assert queries.get_upcoming_elections(days_ahead=0) == []
        assert queries.get_election_detail(E1).election_id == E1
        assert queries.get_election_detail("missing") is None

    def test_jurisdictions_and_states(self, queries):
        assert len(queries.get_jurisdictions_with_influence()) == 3
        assert queries.get_state_distribution()[0].state_code == "AR"
        assert queries.get_jurisdictions_with_influence(G_LONELY) == []

    def test_counts_and_series(self, queries):
        assert queries.get_active_supporter_count() == 2
        points = queries.get_supporter_growth_time_series("monthly")
        assert points[-1].cumulative_supporters == 4

    def test_summary(self, queries):
        assert queries.get_summary().total_supporters == 4
        assert queries.get_summary(G_LONELY).total_supporters == 0

    def test_viewpoint_groups(self, queries):
        assert len(queries.list_viewpoint_groups()) == 5
        assert queries.get_viewpoint_group(ROOT).id == ROOT
        assert queries.get_viewpoint_group("missing") is None
