"""
Shared pytest configuration and fixtures for the influence dashboard.

The seeded fixture network (frozen "now" = 2024-06-15 12:00 UTC):

    ROOT     supporters: p1 (2024-01-10), p2 (2024-06-01), p3 (2024-06-10)
    G_SUB    led by p2;  supporters: p3 (2024-05-20), p4 (2024-03-01)
    G_DEEP   led by p4;  supporters: p5 (2024-04-01)   (two hops from ROOT)
    G_OTHER  led by p9;  supporters: p9                (not connected)

    p1 -> Pulaski County (AR, county) + Little Rock (AR, city)
    p2 -> Pulaski County
    p3 -> Travis County (TX, county)
    p4 -> no person, never mapped
    p5 -> Zone 9 (unrecognized state "ZZ", district)

Elections:
    E1 2024-07-01: race (Pulaski), measure (Little Rock), bare item (Travis)
    E2 2024-08-01: no ballot items
    E3 2024-06-01: in the past
    E4 2024-12-01: beyond the 90 day window
"""

from datetime import date, datetime, timezone
from typing import Optional

import pytest
from sqlmodel import Session

from influence_dashboard.config import Settings
from influence_dashboard.database import build_engine, init_db
from influence_dashboard.models import (
    BallotItem,
    Candidacy,
    Election,
    InfluenceTarget,
    InfluenceTargetGroupRelation,
    Jurisdiction,
    Measure,
    Office,
    OfficeTerm,
    Party,
    Person,
    Profile,
    ProfileGroupRelation,
    Race,
    ViewpointGroup,
    VoterVerification,
    VoterVerificationJurisdiction,
)
from influence_dashboard.services.context import RequestContext
from influence_dashboard.services.queries import DashboardQueries
from influence_dashboard.services.store import RelationStore

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

ROOT = "g-root"
G_SUB = "g-sub"
G_DEEP = "g-deep"
G_OTHER = "g-other"
G_LONELY = "g-lonely"

J_COUNTY = "j-pulaski"
J_CITY = "j-little-rock"
J_TX = "j-travis"
J_NOSTATE = "j-zone-9"

E1 = "e-general"
E2 = "e-empty"
E3 = "e-past"
E4 = "e-far"

BI_RACE = "bi-a-race"
BI_MEASURE = "bi-b-measure"
BI_BARE = "bi-c-bare"


def ts(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 9, 0, tzinfo=timezone.utc)


class Seeder:
    """
    Adds rows one at a time (flush per row) so foreign keys always resolve.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    def group(self, group_id: str, title: Optional[str] = None, created_at: Optional[datetime] = None):
        return self.add(ViewpointGroup(id=group_id, title=title or group_id, created_at=created_at or ts(2023, 1, 1)))

    def profile(self, profile_id: str, *, with_person: bool = True):
        person_id = None
        if with_person:
            person_id = f"person-{profile_id}"
            self.add(Person(id=person_id, full_name=profile_id.upper()))
        return self.add(Profile(id=profile_id, display_name=profile_id, person_id=person_id))

    def supports(self, profile_id: str, group_id: str, at: datetime):
        return self.add(ProfileGroupRelation(profile_id=profile_id, viewpoint_group_id=group_id, type="supporter", created_at=at))

    def leads(self, profile_id: str, group_id: str):
        return self.add(ProfileGroupRelation(profile_id=profile_id, viewpoint_group_id=group_id, type="leader", created_at=ts(2023, 6, 1)))

    def jurisdiction(self, jurisdiction_id: str, name: str, level: str, state: Optional[str]):
        return self.add(Jurisdiction(id=jurisdiction_id, name=name, level=level, state=state))

    def registered(self, profile_id: str, *jurisdiction_ids: str):
        vv = self.add(VoterVerification(id=f"vv-{profile_id}", person_id=f"person-{profile_id}"))
        for jid in jurisdiction_ids:
            self.add(VoterVerificationJurisdiction(voter_verification_id=vv.id, jurisdiction_id=jid))
        return vv


def seed_network(session: Session) -> None:
    s = Seeder(session)

    for gid in (ROOT, G_SUB, G_DEEP, G_OTHER, G_LONELY):
        s.group(gid)

    for pid in ("p1", "p2", "p3", "p5", "p9"):
        s.profile(pid)
    s.profile("p4", with_person=False)

    s.supports("p1", ROOT, ts(2024, 1, 10))
    s.supports("p2", ROOT, ts(2024, 6, 1))
    s.supports("p3", ROOT, ts(2024, 6, 10))
    s.supports("p3", G_SUB, ts(2024, 5, 20))
    s.supports("p4", G_SUB, ts(2024, 3, 1))
    s.supports("p5", G_DEEP, ts(2024, 4, 1))
    s.supports("p9", G_OTHER, ts(2024, 2, 1))

    s.leads("p2", G_SUB)
    s.leads("p4", G_DEEP)
    s.leads("p9", G_OTHER)

    s.jurisdiction(J_COUNTY, "Pulaski County", "county", "AR")
    s.jurisdiction(J_CITY, "Little Rock", "city", " ar ")
    s.jurisdiction(J_TX, "Travis County", "county", "TX")
    s.jurisdiction(J_NOSTATE, "Zone 9", "district", "ZZ")

    s.registered("p1", J_COUNTY, J_CITY)
    s.registered("p2", J_COUNTY)
    s.registered("p3", J_TX)
    s.registered("p5", J_NOSTATE)

    # --- ballots ---
    s.add(Election(id=E1, name="General", poll_date=date(2024, 7, 1), description="Summer general"))
    s.add(Election(id=E2, name=None, poll_date=date(2024, 8, 1)))
    s.add(Election(id=E3, name="Past", poll_date=date(2024, 6, 1)))
    s.add(Election(id=E4, name="Far", poll_date=date(2024, 12, 1)))

    s.add(BallotItem(id=BI_RACE, election_id=E1, jurisdiction_id=J_COUNTY, title="County Judge", description="Race"))
    s.add(BallotItem(id=BI_MEASURE, election_id=E1, jurisdiction_id=J_CITY, title=None, description=None))
    s.add(BallotItem(id=BI_BARE, election_id=E1, jurisdiction_id=J_TX, title="Mystery item"))
    s.add(BallotItem(id="bi-past", election_id=E3, jurisdiction_id=J_COUNTY, title="Old"))
    s.add(BallotItem(id="bi-far", election_id=E4, jurisdiction_id=J_COUNTY, title="Later"))

    s.add(Office(id="office-judge", name="County Judge", level="county", district="1"))
    s.add(OfficeTerm(id="term-judge", office_id="office-judge"))
    s.add(Party(id="party-ind", name="Independent"))
    s.add(Party(id="party-green", name="Green"))

    s.add(InfluenceTarget(id="t-judge", office_id="office-judge"))
    s.add(InfluenceTarget(id="t-parks"))

    s.add(
        Race(
            id="race-judge",
            ballot_item_id=BI_RACE,
            office_term_id="term-judge",
            party_id="party-ind",
            is_partisan=False,
            is_primary=False,
            influence_target_id="t-judge",
        )
    )
    s.add(Person(id="person-alice", full_name="Alice Candidate"))
    s.add(Person(id="person-bob", full_name="Bob Candidate"))
    s.add(Candidacy(id="cand-1", race_id="race-judge", candidate_id="person-alice", party_id="party-ind", status="qualified"))
    s.add(
        Candidacy(
            id="cand-2",
            race_id="race-judge",
            candidate_id="person-bob",
            party_id="party-green",
            status="withdrawn",
            is_withdrawn=True,
        )
    )

    s.add(
        Measure(
            id="measure-parks",
            ballot_item_id=BI_MEASURE,
            title=None,
            name="Issue 1",
            summary="Raise the parks budget",
            fiscal_impact="$2M",
            influence_target_id="t-parks",
        )
    )

    s.add(InfluenceTargetGroupRelation(influence_target_id="t-judge", viewpoint_group_id=ROOT, weight=1.0))
    s.add(InfluenceTargetGroupRelation(influence_target_id="t-judge", viewpoint_group_id=G_SUB, weight=1.0))
    s.add(InfluenceTargetGroupRelation(influence_target_id="t-judge", viewpoint_group_id=G_OTHER, weight=0.0))
    s.add(InfluenceTargetGroupRelation(influence_target_id="t-parks", viewpoint_group_id=ROOT, weight=0.4))


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a per-test SQLite file; no retry sleeps."""
    return Settings(
        db_path=str(tmp_path / "influence.sqlite"),
        root_viewpoint_group_id=ROOT,
        retry_base_delay=0.0,
        max_workers=4,
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine, settings):
    return RelationStore.from_settings(engine, settings)


@pytest.fixture
def seeded(engine):
    """Populate the fixture network described in the module docstring."""
    with Session(engine) as session:
        seed_network(session)
        session.commit()
    return engine


@pytest.fixture
def add_rows(seeded):
    """Insert extra rows on top of the seeded network."""

    def _add(*rows):
        with Session(seeded) as session:
            s = Seeder(session)
            for row in rows:
                s.add(row)
            session.commit()

    return _add


@pytest.fixture
def ctx(store, settings, seeded):
    """A request context over the seeded store with the clock frozen at NOW."""
    return RequestContext(store=store, settings=settings, now=NOW)


@pytest.fixture
def queries(store, settings, seeded):
    return DashboardQueries(store, settings, clock=lambda: NOW)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast, no database)")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (seeded SQLite database)"
    )
    config.addinivalue_line("markers", "api: marks tests that go through the HTTP layer")
