"""
Rebuilding the precomputed rollup views.
"""

import pytest
from sqlmodel import Session, select

from conftest import G_SUB, NOW, ROOT
from influence_dashboard.models import RollupStatus, SupporterJurisdictionRollup, TimeSeriesRollup
from influence_dashboard.models.common import as_utc
from influence_dashboard.services.rollups import refresh_rollups


@pytest.mark.integration
class TestRefreshRollups:
    def test_counts(self, store, settings, seeded):
        result = refresh_rollups(store, settings, now=NOW)

        assert result.groups == 5
        # ROOT: 4 (p1 x2, p2, p3), G_SUB: 1 (p3), G_DEEP: 1 (p5)
        assert result.jurisdiction_rows == 6
        # per group, daily + weekly + monthly buckets: ROOT 8, G_SUB 6, G_DEEP 3, G_OTHER 3
        assert result.time_series_rows == 20

    def test_rows_keep_per_group_earliest_relation(self, store, settings, seeded):
        refresh_rollups(store, settings, now=NOW)

        with Session(seeded) as session:
            rows = session.exec(
                select(SupporterJurisdictionRollup).where(SupporterJurisdictionRollup.profile_id == "p3")
            ).all()
            by_group = {r.viewpoint_group_id: as_utc(r.created_at) for r in rows}

        assert by_group[ROOT].date().isoformat() == "2024-06-10"
        assert by_group[G_SUB].date().isoformat() == "2024-05-20"

    def test_status_markers(self, store, settings, seeded):
        refresh_rollups(store, settings, now=NOW)

        with Session(seeded) as session:
            statuses = {s.name: s for s in session.exec(select(RollupStatus)).all()}

        assert set(statuses) == {"supporters_by_jurisdiction", "time_series_supporters"}
        assert as_utc(statuses["supporters_by_jurisdiction"].refreshed_at) == NOW
        assert statuses["supporters_by_jurisdiction"].row_count == 6

    def test_refresh_is_repeatable(self, store, settings, seeded):
        refresh_rollups(store, settings, now=NOW)
        second = refresh_rollups(store, settings, now=NOW)

        with Session(seeded) as session:
            assert len(session.exec(select(TimeSeriesRollup)).all()) == second.time_series_rows
