from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from sqlmodel import select

from ..models.election import BallotItem, Election
from ..models.jurisdiction import Jurisdiction
from ..models.measure import Measure
from ..models.profile import Person
from ..models.race import Candidacy, Office, OfficeTerm, Party, Race
from ..schemas import (
    BallotItemView,
    CandidateOut,
    ElectionDetail,
    ElectionInfluence,
    ElectionSummary,
    JurisdictionBreakdown,
    MeasureBallotItem,
    MeasureDetail,
    RaceBallotItem,
    RaceDetail,
    UnclassifiedBallotItem,
)
from .context import RequestContext
from .jurisdictions import SupporterMap, supporters_by_jurisdiction
from .scoring import (
    election_share_in_scope,
    estimate_turnout,
    is_high_leverage,
    score_ballot_item,
    supporter_share,
)

logger = logging.getLogger(__name__)

# Items scoring above this count as influence targets for the election.
INFLUENCE_TARGET_SCORE = 50
TOP_RACES_LIMIT = 3

# (ballot item, its jurisdiction); the inner join guarantees the jurisdiction
BallotRow = Tuple[BallotItem, Jurisdiction]


@dataclass(frozen=True)
class ResolvedBallot:
    """
    One election's classified ballot, ready to summarise.
    """

    items: List[BallotItemView]
    jurisdictions: List[Jurisdiction]

    @property
    def races_count(self) -> int:
        return sum(1 for bi in self.items if bi.type == "race")

    @property
    def measures_count(self) -> int:
        return sum(1 for bi in self.items if bi.type == "measure")

    @property
    def unclassified_count(self) -> int:
        return sum(1 for bi in self.items if bi.type == "unclassified")


# -----------------------------
# Store lookups
# -----------------------------

def elections_in_window(ctx: RequestContext, days_ahead: int) -> List[Election]:
    """
    Elections with today <= poll_date <= today + days_ahead (date-only), ascending.
    """
    start = ctx.today
    end = start + timedelta(days=max(0, int(days_ahead)))
    stmt = (
        select(Election)
        .where(Election.poll_date >= start)
        .where(Election.poll_date <= end)
        .order_by(Election.poll_date, Election.id)
    )
    return ctx.store.all(stmt, label="elections:window")


def ballot_rows_for(ctx: RequestContext, election_ids: Iterable[str]) -> Dict[str, List[BallotRow]]:
    """
    election_id -> [(ballot item, jurisdiction)], items without a jurisdiction dropped.
    """

    def _stmt(batch: List[str]):
        return (
            select(BallotItem, Jurisdiction)
            .join(Jurisdiction, BallotItem.jurisdiction_id == Jurisdiction.id)
            .where(BallotItem.election_id.in_(batch))
            .order_by(BallotItem.election_id, BallotItem.id)
        )

    grouped: Dict[str, List[BallotRow]] = {}
    for item, jurisdiction in ctx.store.in_batches(election_ids, _stmt, label="elections:ballot_items"):
        grouped.setdefault(item.election_id, []).append((item, jurisdiction))
    return grouped


def _first_by_ballot_item(rows: Iterable, attr: str = "ballot_item_id") -> Dict[str, object]:
    out: Dict[str, object] = {}
    for row in rows:
        out.setdefault(getattr(row, attr), row)
    return out


def races_and_measures(
    ctx: RequestContext, ballot_item_ids: List[str]
) -> Tuple[Dict[str, Race], Dict[str, Measure]]:
    """
    At most one race and one measure per ballot item; both lookups run concurrently.
    """
    races, measures = ctx.gather(
        lambda: ctx.store.in_batches(
            ballot_item_ids,
            lambda batch: select(Race).where(Race.ballot_item_id.in_(batch)).order_by(Race.id),
            label="elections:races",
        ),
        lambda: ctx.store.in_batches(
            ballot_item_ids,
            lambda batch: select(Measure).where(Measure.ballot_item_id.in_(batch)).order_by(Measure.id),
            label="elections:measures",
        ),
    )
    return _first_by_ballot_item(races), _first_by_ballot_item(measures)


def _by_id(ctx: RequestContext, model, ids: Iterable[Optional[str]], label: str) -> Dict[str, object]:
    rows = ctx.store.in_batches(ids, lambda batch: select(model).where(model.id.in_(batch)), label=label)
    return {row.id: row for row in rows}


def race_details(ctx: RequestContext, races: Iterable[Race]) -> Dict[str, RaceDetail]:
    """
    race_id -> RaceDetail with office, party and the full candidate roster
    (withdrawn candidacies included and flagged).
    """
    races = list(races)
    if not races:
        return {}

    terms, candidacy_rows = ctx.gather(
        lambda: _by_id(ctx, OfficeTerm, (r.office_term_id for r in races), "races:office_terms"),
        lambda: ctx.store.in_batches(
            (r.id for r in races),
            lambda batch: select(Candidacy).where(Candidacy.race_id.in_(batch)).order_by(Candidacy.id),
            label="races:candidacies",
        ),
    )

    party_ids = [r.party_id for r in races] + [c.party_id for c in candidacy_rows]
    offices, parties, people = ctx.gather(
        lambda: _by_id(ctx, Office, (t.office_id for t in terms.values()), "races:offices"),
        lambda: _by_id(ctx, Party, party_ids, "races:parties"),
        lambda: _by_id(ctx, Person, (c.candidate_id for c in candidacy_rows), "races:candidates"),
    )

    candidacies_by_race: Dict[str, List[Candidacy]] = {}
    for c in candidacy_rows:
        candidacies_by_race.setdefault(c.race_id, []).append(c)

    details: Dict[str, RaceDetail] = {}
    for race in races:
        term = terms.get(race.office_term_id) if race.office_term_id else None
        office = offices.get(term.office_id) if term and term.office_id else None
        party = parties.get(race.party_id) if race.party_id else None

        candidates = []
        for c in candidacies_by_race.get(race.id, []):
            person = people.get(c.candidate_id)
            c_party = parties.get(c.party_id) if c.party_id else None
            candidates.append(
                CandidateOut(
                    candidacy_id=c.id,
                    candidate_id=c.candidate_id,
                    candidate_name=person.full_name if person else None,
                    party_id=c.party_id,
                    party_name=c_party.name if c_party else None,
                    status=c.status,
                    is_withdrawn=c.is_withdrawn,
                    result=c.result,
                )
            )

        details[race.id] = RaceDetail(
            race_id=race.id,
            office_term_id=race.office_term_id,
            office_name=office.name if office else None,
            office_level=office.level if office else None,
            office_district=office.district if office else None,
            candidates=candidates,
            party_id=race.party_id,
            party_name=party.name if party else None,
            is_partisan=race.is_partisan,
            is_primary=race.is_primary,
        )
    return details


def measure_detail(measure: Measure) -> MeasureDetail:
    return MeasureDetail(
        measure_id=measure.id,
        title=measure.title or measure.name,
        summary=measure.summary,
        full_text=measure.full_text,
        fiscal_impact=measure.fiscal_impact,
        pro_snippet=measure.pro_snippet,
        con_snippet=measure.con_snippet,
    )


# -----------------------------
# Classification
# -----------------------------

def resolve_ballot(
    ctx: RequestContext,
    rows: List[BallotRow],
    supporter_map: SupporterMap,
    network_ids: Iterable[str],
) -> ResolvedBallot:
    """
    Classify each ballot item (race, else measure, else unclassified) and score it.
    """
    network_ids = list(network_ids)
    item_ids = [item.id for item, _j in rows]
    races, measures = races_and_measures(ctx, item_ids)
    details = race_details(ctx, races.values())

    def _build(row: BallotRow) -> BallotItemView:
        item, jurisdiction = row
        supporters = supporter_map.get(item.jurisdiction_id)
        count = supporters.supporter_count if supporters else 0
        base = dict(
            ballot_item_id=item.id,
            title=item.title,
            description=item.description,
            jurisdiction_id=item.jurisdiction_id or "",
            jurisdiction_name=jurisdiction.name,
            supporter_count=count,
        )

        race = races.get(item.id)
        if race is not None:
            return RaceBallotItem(
                **base,
                race=details[race.id],
                influence_score=score_ballot_item(ctx, count, race.influence_target_id, network_ids),
            )

        measure = measures.get(item.id)
        if measure is not None:
            detail = measure_detail(measure)
            base["title"] = item.title or detail.title
            base["description"] = item.description or measure.summary
            return MeasureBallotItem(
                **base,
                measure=detail,
                influence_score=score_ballot_item(ctx, count, measure.influence_target_id, network_ids),
            )

        logger.warning("ballot item %s has neither a race nor a measure; reporting it as unclassified", item.id)
        return UnclassifiedBallotItem(**base, influence_score=0.0)

    items = ctx.fan_out(_build, rows)

    seen: Dict[str, Jurisdiction] = {}
    for _item, jurisdiction in rows:
        seen.setdefault(jurisdiction.id, jurisdiction)

    return ResolvedBallot(items=items, jurisdictions=list(seen.values()))


def supporters_in_scope(jurisdictions: Iterable[Jurisdiction], supporter_map: SupporterMap) -> int:
    """
    Sum of each distinct jurisdiction's supporter-set size. A supporter
    registered in two of the election's jurisdictions counts twice.
    """
    total = 0
    for j in jurisdictions:
        supporters = supporter_map.get(j.id)
        if supporters:
            total += supporters.supporter_count
    return total


# -----------------------------
# Public operations
# -----------------------------

def upcoming_elections(ctx: RequestContext, days_ahead: int, network_ids: Iterable[str]) -> List[ElectionInfluence]:
    network_ids = list(network_ids)
    elections = elections_in_window(ctx, days_ahead)
    if not elections:
        return []

    supporter_map, rows_by_election = ctx.gather(
        lambda: supporters_by_jurisdiction(ctx, network_ids),
        lambda: ballot_rows_for(ctx, (e.id for e in elections)),
    )

    results: List[ElectionInfluence] = []
    for election in elections:
        rows = rows_by_election.get(election.id)
        if not rows:
            continue

        ballot = resolve_ballot(ctx, rows, supporter_map, network_ids)
        in_scope = supporters_in_scope(ballot.jurisdictions, supporter_map)
        share = election_share_in_scope(in_scope, len(ballot.jurisdictions))

        results.append(
            ElectionInfluence(
                election_id=election.id,
                name=election.name or "Unnamed Election",
                poll_date=election.poll_date,
                description=election.description,
                supporters_in_scope=in_scope,
                supporter_share_in_scope=share,
                is_high_leverage=is_high_leverage(share, ctx.settings.high_leverage_threshold),
                influence_target_count=sum(1 for bi in ballot.items if bi.influence_score > INFLUENCE_TARGET_SCORE),
                ballot_items_count=len(ballot.items),
                races_count=ballot.races_count,
                measures_count=ballot.measures_count,
                unclassified_count=ballot.unclassified_count,
                ballot_items=ballot.items,
            )
        )

    logger.debug("upcoming elections: %d of %d in window have ballot items", len(results), len(elections))
    return results


def election_detail(ctx: RequestContext, election_id: str, network_ids: Iterable[str]) -> Optional[ElectionDetail]:
    network_ids = list(network_ids)
    election = ctx.store.get(Election, election_id, label="elections:get")
    if election is None:
        return None

    supporter_map, rows_by_election = ctx.gather(
        lambda: supporters_by_jurisdiction(ctx, network_ids),
        lambda: ballot_rows_for(ctx, [election.id]),
    )
    rows = rows_by_election.get(election.id, [])
    ballot = resolve_ballot(ctx, rows, supporter_map, network_ids)

    breakdown: List[JurisdictionBreakdown] = []
    for j in ballot.jurisdictions:
        supporters = supporter_map.get(j.id)
        count = supporters.supporter_count if supporters else 0
        breakdown.append(
            JurisdictionBreakdown(
                jurisdiction_id=j.id,
                jurisdiction_name=j.name or "Unknown",
                supporter_count=count,
                supporter_share=supporter_share(count, estimate_turnout(j.level)),
            )
        )

    in_scope = sum(b.supporter_count for b in breakdown)
    # sorted() is stable: equal scores keep ballot order
    top_races = sorted(
        (bi for bi in ballot.items if isinstance(bi, RaceBallotItem)),
        key=lambda bi: bi.influence_score,
        reverse=True,
    )[:TOP_RACES_LIMIT]

    return ElectionDetail(
        election_id=election.id,
        name=election.name or "Unnamed Election",
        poll_date=election.poll_date,
        description=election.description,
        summary=ElectionSummary(
            supporters_in_scope=in_scope,
            supporter_share_in_scope=election_share_in_scope(in_scope, len(ballot.jurisdictions)),
            total_ballot_items=len(ballot.items),
            races_count=ballot.races_count,
            measures_count=ballot.measures_count,
            unclassified_count=ballot.unclassified_count,
        ),
        ballot_items=ballot.items,
        top_races=top_races,
        jurisdiction_breakdown=breakdown,
    )
