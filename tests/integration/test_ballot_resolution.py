"""
Upcoming elections, ballot item classification and election detail.
"""

import logging

import pytest

from conftest import BI_BARE, BI_MEASURE, BI_RACE, E1, E2, E3, E4, G_LONELY, G_OTHER, G_SUB, J_CITY, J_COUNTY, J_TX, NOW, ROOT
from influence_dashboard.models import BallotItem, Race
from influence_dashboard.schemas import (
    ElectionInfluence,
    MeasureBallotItem,
    RaceBallotItem,
    UnclassifiedBallotItem,
)
from influence_dashboard.services.ballots import election_detail, upcoming_elections
from influence_dashboard.services.context import RequestContext
from influence_dashboard.services.scoring import score_ballot_item

NETWORK = frozenset({ROOT, G_SUB})


@pytest.mark.integration
class TestUpcomingElections:
    def test_window_and_exclusions(self, ctx):
        elections = upcoming_elections(ctx, 90, NETWORK)
        # E2 has no ballot items, E3 is past, E4 is beyond 90 days
        assert [e.election_id for e in elections] == [E1]

    def test_window_is_inclusive_and_ascending(self, ctx):
        assert [e.election_id for e in upcoming_elections(ctx, 200, NETWORK)] == [E1, E4]
        assert upcoming_elections(ctx, 0, NETWORK) == []

    def test_election_aggregates(self, ctx):
        (election,) = upcoming_elections(ctx, 90, NETWORK)

        assert election.name == "General"
        assert election.supporters_in_scope == 4
        assert election.supporter_share_in_scope == pytest.approx(4 / 30_000 * 100)
        assert election.is_high_leverage is False
        assert election.ballot_items_count == 3
        assert election.races_count == 1
        assert election.measures_count == 1
        assert election.unclassified_count == 1
        assert election.influence_target_count == 1

    def test_ballot_items_are_tagged(self, ctx):
        (election,) = upcoming_elections(ctx, 90, NETWORK)
        items = {bi.ballot_item_id: bi for bi in election.ballot_items}

        assert isinstance(items[BI_RACE], RaceBallotItem)
        assert isinstance(items[BI_MEASURE], MeasureBallotItem)
        assert isinstance(items[BI_BARE], UnclassifiedBallotItem)
        assert [bi.type for bi in election.ballot_items] == ["race", "measure", "unclassified"]

    def test_race_item(self, ctx):
        (election,) = upcoming_elections(ctx, 90, NETWORK)
        race_item = election.ballot_items[0]

        assert race_item.jurisdiction_id == J_COUNTY
        assert race_item.jurisdiction_name == "Pulaski County"
        assert race_item.supporter_count == 2
        # 2 / 10,000 * 50 + mean(1.0, 1.0) * 50; the out-of-network 0.0 weight is ignored
        assert race_item.influence_score == pytest.approx(50.01)

        race = race_item.race
        assert race.office_name == "County Judge"
        assert race.office_level == "county"
        assert race.party_name == "Independent"
        roster = {c.candidate_name: c for c in race.candidates}
        assert set(roster) == {"Alice Candidate", "Bob Candidate"}
        assert roster["Bob Candidate"].is_withdrawn is True
        assert roster["Bob Candidate"].party_name == "Green"

    def test_measure_only_item(self, ctx):
        (election,) = upcoming_elections(ctx, 90, NETWORK)
        item = election.ballot_items[1]

        assert item.type == "measure"
        assert not hasattr(item, "race")
        assert item.title == "Issue 1"
        assert item.description == "Raise the parks budget"
        assert item.measure.title == "Issue 1"
        assert item.measure.summary == "Raise the parks budget"
        assert item.measure.fiscal_impact == "$2M"
        assert item.influence_score == pytest.approx(20.005)

    def test_bare_item_is_unclassified_and_logged(self, ctx, caplog):
        with caplog.at_level(logging.WARNING, logger="influence_dashboard.services.ballots"):
            (election,) = upcoming_elections(ctx, 90, NETWORK)

        item = election.ballot_items[2]
        assert item.type == "unclassified"
        assert item.influence_score == 0.0
        assert BI_BARE in caplog.text

    def test_lower_threshold_marks_high_leverage(self, store, settings, seeded):
        cfg = settings.model_copy(update={"high_leverage_threshold": 0.01})
        ctx = RequestContext(store=store, settings=cfg, now=NOW)
        (election,) = upcoming_elections(ctx, 90, NETWORK)
        assert election.is_high_leverage is True

    def test_empty_network_still_lists_elections(self, ctx):
        (election,) = upcoming_elections(ctx, 90, {G_LONELY})
        assert election.supporters_in_scope == 0
        assert election.supporter_share_in_scope == 0.0
        assert all(bi.supporter_count == 0 for bi in election.ballot_items)

    def test_serialised_items_keep_their_tag(self, ctx):
        (election,) = upcoming_elections(ctx, 90, NETWORK)
        payload = election.model_dump(mode="json")

        assert [bi["type"] for bi in payload["ballot_items"]] == ["race", "measure", "unclassified"]
        restored = ElectionInfluence.model_validate(payload)
        assert isinstance(restored.ballot_items[1], MeasureBallotItem)


@pytest.mark.integration
class TestElectionDetail:
    def test_missing_election(self, ctx):
        assert election_detail(ctx, "no-such-election", NETWORK) is None

    def test_detail(self, ctx):
        detail = election_detail(ctx, E1, NETWORK)

        assert detail.name == "General"
        assert detail.summary.supporters_in_scope == 4
        assert detail.summary.total_ballot_items == 3
        assert detail.summary.races_count == 1
        assert detail.summary.measures_count == 1
        assert detail.summary.unclassified_count == 1
        assert [r.ballot_item_id for r in detail.top_races] == [BI_RACE]

    def test_jurisdiction_breakdown(self, ctx):
        detail = election_detail(ctx, E1, NETWORK)
        breakdown = [(b.jurisdiction_id, b.supporter_count) for b in detail.jurisdiction_breakdown]

        assert breakdown == [(J_COUNTY, 2), (J_CITY, 1), (J_TX, 1)]
        shares = {b.jurisdiction_id: b.supporter_share for b in detail.jurisdiction_breakdown}
        assert shares[J_CITY] == pytest.approx(0.002)
        assert shares[J_COUNTY] == pytest.approx(0.0004)

    def test_election_without_items(self, ctx):
        detail = election_detail(ctx, E2, NETWORK)
        assert detail.name == "Unnamed Election"
        assert detail.ballot_items == []
        assert detail.summary.supporter_share_in_scope is None

    def test_detail_ignores_the_upcoming_window(self, ctx):
        assert election_detail(ctx, E3, NETWORK).summary.total_ballot_items == 1

    def test_top_races_limited_to_three_by_score(self, ctx, add_rows):
        add_rows(
            BallotItem(id="bi-d-race2", election_id=E1, jurisdiction_id=J_CITY, title="Mayor"),
            Race(id="race-mayor", ballot_item_id="bi-d-race2", influence_target_id="t-judge"),
            BallotItem(id="bi-e-race3", election_id=E1, jurisdiction_id=J_TX, title="Sheriff"),
            Race(id="race-sheriff", ballot_item_id="bi-e-race3"),
            BallotItem(id="bi-f-race4", election_id=E1, jurisdiction_id=J_TX, title="Clerk"),
            Race(id="race-clerk", ballot_item_id="bi-f-race4"),
        )

        detail = election_detail(ctx, E1, NETWORK)

        assert detail.summary.races_count == 4
        assert [r.ballot_item_id for r in detail.top_races] == [BI_RACE, "bi-d-race2", "bi-e-race3"]


@pytest.mark.integration
class TestScoreBallotItem:
    def test_race_target_fully_aligned(self, ctx):
        assert score_ballot_item(ctx, 2, "t-judge", NETWORK) == pytest.approx(50.01)

    def test_partial_alignment(self, ctx):
        assert score_ballot_item(ctx, 1, "t-parks", NETWORK) == pytest.approx(20.005)

    def test_zero_weight_outside_network(self, ctx):
        # G_OTHER weighs t-judge at 0; ROOT's weight is not in scope
        assert score_ballot_item(ctx, 0, "t-judge", frozenset({G_OTHER})) == 0.0

    def test_no_target_scores_zero(self, ctx):
        assert score_ballot_item(ctx, 500, None, NETWORK) == 0.0

    def test_target_without_weights_scores_share_only(self, ctx):
        assert score_ballot_item(ctx, 3, "t-unweighted", NETWORK) == pytest.approx(0.015)
