from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from sqlmodel import select

from ..models.common import as_utc
from ..models.election import BallotItem, Election
from ..models.jurisdiction import Jurisdiction
from ..models.profile import Profile
from ..models.race import Race
from ..models.rollup import RollupStatus, SupporterJurisdictionRollup
from ..models.voter import VoterVerification, VoterVerificationJurisdiction
from ..schemas import JurisdictionInfluence, StateDistribution
from .context import RequestContext
from .network import network_supporter_rows, sorted_network
from .scoring import estimate_turnout, supporter_share

logger = logging.getLogger(__name__)

SUPPORTER_ROLLUP_NAME = "supporters_by_jurisdiction"

STATE_NAMES: Dict[str, str] = {
    "AL": "Alabama",
    "AK": "Alaska",
    "AZ": "Arizona",
    "AR": "Arkansas",
    "CA": "California",
    "CO": "Colorado",
    "CT": "Connecticut",
    "DE": "Delaware",
    "FL": "Florida",
    "GA": "Georgia",
    "HI": "Hawaii",
    "ID": "Idaho",
    "IL": "Illinois",
    "IN": "Indiana",
    "IA": "Iowa",
    "KS": "Kansas",
    "KY": "Kentucky",
    "LA": "Louisiana",
    "ME": "Maine",
    "MD": "Maryland",
    "MA": "Massachusetts",
    "MI": "Michigan",
    "MN": "Minnesota",
    "MS": "Mississippi",
    "MO": "Missouri",
    "MT": "Montana",
    "NE": "Nebraska",
    "NV": "Nevada",
    "NH": "New Hampshire",
    "NJ": "New Jersey",
    "NM": "New Mexico",
    "NY": "New York",
    "NC": "North Carolina",
    "ND": "North Dakota",
    "OH": "Ohio",
    "OK": "Oklahoma",
    "OR": "Oregon",
    "PA": "Pennsylvania",
    "RI": "Rhode Island",
    "SC": "South Carolina",
    "SD": "South Dakota",
    "TN": "Tennessee",
    "TX": "Texas",
    "UT": "Utah",
    "VT": "Vermont",
    "VA": "Virginia",
    "WA": "Washington",
    "WV": "West Virginia",
    "WI": "Wisconsin",
    "WY": "Wyoming",
    "DC": "District of Columbia",
}


@dataclass
class JurisdictionSupporters:
    """
    Supporters registered in one jurisdiction.

    first_seen keeps each profile's earliest supporter relation inside the
    network (acquisition), last_seen its latest (activity). profile_ids is
    therefore deduplicated and created_ats has one entry per
    (profile, jurisdiction).
    """

    first_seen: Dict[str, Optional[datetime]] = field(default_factory=dict)
    last_seen: Dict[str, Optional[datetime]] = field(default_factory=dict)

    def add(self, profile_id: str, created_at: Optional[datetime], latest: Optional[datetime] = None) -> None:
        latest = latest or created_at
        if profile_id not in self.first_seen:
            self.first_seen[profile_id] = created_at
            self.last_seen[profile_id] = latest
            return
        current = self.first_seen[profile_id]
        if created_at is not None and (current is None or created_at < current):
            self.first_seen[profile_id] = created_at
        current = self.last_seen.get(profile_id)
        if latest is not None and (current is None or latest > current):
            self.last_seen[profile_id] = latest

    @property
    def profile_ids(self) -> Set[str]:
        return set(self.first_seen)

    @property
    def created_ats(self) -> List[datetime]:
        return sorted(ts for ts in self.first_seen.values() if ts is not None)

    @property
    def supporter_count(self) -> int:
        return len(self.first_seen)

    def acquired_since(self, since: datetime) -> int:
        return sum(1 for ts in self.first_seen.values() if ts is not None and ts >= since)

    def active_since(self, since: datetime) -> int:
        """
        Profiles with any supporter relation at or after `since`; the same
        rule active_supporter_count applies network-wide.
        """
        return sum(1 for ts in self.last_seen.values() if ts is not None and ts >= since)


SupporterMap = Dict[str, JurisdictionSupporters]


# -----------------------------
# Strategies (must agree on identical data)
# -----------------------------

class SupporterMappingStrategy:
    name = "base"

    def load(self, ctx: RequestContext, network_ids: List[str]) -> SupporterMap:
        raise NotImplementedError


class DirectJoinStrategy(SupporterMappingStrategy):
    """
    supporter relation -> profile -> person -> voter verification -> jurisdiction,
    as a chain of batched lookups.
    """

    name = "direct"

    def load(self, ctx: RequestContext, network_ids: List[str]) -> SupporterMap:
        supporters = network_supporter_rows(ctx, network_ids)
        if not supporters:
            return {}

        store = ctx.store

        profiles = store.in_batches(
            (pid for pid, _gid, _ts in supporters),
            lambda batch: select(Profile.id, Profile.person_id).where(Profile.id.in_(batch)),
            label="jurisdictions:profiles",
        )
        profile_to_person = {pid: person_id for pid, person_id in profiles if person_id}
        if not profile_to_person:
            return {}

        verifications = store.in_batches(
            profile_to_person.values(),
            lambda batch: select(VoterVerification.id, VoterVerification.person_id).where(
                VoterVerification.person_id.in_(batch)
            ),
            label="jurisdictions:voter_verifications",
        )
        person_to_vvs: Dict[str, List[str]] = {}
        for vv_id, person_id in verifications:
            if person_id:
                person_to_vvs.setdefault(person_id, []).append(vv_id)
        if not person_to_vvs:
            return {}

        links = store.in_batches(
            (vv_id for vv_ids in person_to_vvs.values() for vv_id in vv_ids),
            lambda batch: select(
                VoterVerificationJurisdiction.voter_verification_id,
                VoterVerificationJurisdiction.jurisdiction_id,
            ).where(VoterVerificationJurisdiction.voter_verification_id.in_(batch)),
            label="jurisdictions:verification_links",
        )
        vv_to_jurisdictions: Dict[str, List[str]] = {}
        for vv_id, jurisdiction_id in links:
            if jurisdiction_id:
                vv_to_jurisdictions.setdefault(vv_id, []).append(jurisdiction_id)

        result: SupporterMap = {}
        for profile_id, _group_id, created_at in supporters:
            person_id = profile_to_person.get(profile_id)
            if not person_id:
                continue
            for vv_id in person_to_vvs.get(person_id, []):
                for jurisdiction_id in vv_to_jurisdictions.get(vv_id, []):
                    result.setdefault(jurisdiction_id, JurisdictionSupporters()).add(profile_id, created_at)
        return result


class RollupViewStrategy(SupporterMappingStrategy):
    """
    Reads the precomputed mv_supporters_by_jurisdiction mapping.
    """

    name = "rollup"

    def load(self, ctx: RequestContext, network_ids: List[str]) -> SupporterMap:
        rows = ctx.store.in_batches(
            network_ids,
            lambda batch: select(
                SupporterJurisdictionRollup.jurisdiction_id,
                SupporterJurisdictionRollup.profile_id,
                SupporterJurisdictionRollup.created_at,
                SupporterJurisdictionRollup.last_seen_at,
            ).where(SupporterJurisdictionRollup.viewpoint_group_id.in_(batch)),
            label="jurisdictions:rollup",
        )
        result: SupporterMap = {}
        for jurisdiction_id, profile_id, created_at, last_seen_at in rows:
            if jurisdiction_id and profile_id:
                result.setdefault(jurisdiction_id, JurisdictionSupporters()).add(
                    profile_id, as_utc(created_at), as_utc(last_seen_at)
                )
        return result


def rollup_is_fresh(ctx: RequestContext, name: str = SUPPORTER_ROLLUP_NAME) -> bool:
    status = ctx.store.get(RollupStatus, name, label="rollups:status")
    if status is None:
        return False
    refreshed_at = as_utc(status.refreshed_at)
    if refreshed_at is None:
        return False
    return ctx.now - refreshed_at <= timedelta(minutes=ctx.settings.rollup_max_age_minutes)


def select_strategy(ctx: RequestContext) -> SupporterMappingStrategy:
    """
    Prefer the rollup view when enabled and fresh; otherwise join raw relations.
    """

    def _choose() -> SupporterMappingStrategy:
        if ctx.settings.prefer_rollup_views and rollup_is_fresh(ctx):
            return RollupViewStrategy()
        logger.debug("supporter rollup missing or stale; using direct join path")
        return DirectJoinStrategy()

    return ctx.cache.get_or_compute(("supporter_strategy",), _choose)


def supporters_by_jurisdiction(
    ctx: RequestContext,
    network_ids: Iterable[str],
    *,
    strategy: Optional[SupporterMappingStrategy] = None,
) -> SupporterMap:
    """
    jurisdiction_id -> JurisdictionSupporters for every supporter in the network.
    Profiles without a person, verification or jurisdiction link are skipped.
    """
    ids = sorted_network(network_ids)
    if strategy is not None:
        return strategy.load(ctx, ids)

    chosen = select_strategy(ctx)
    return ctx.cache.get_or_compute(("supporter_map", chosen.name, tuple(ids)), lambda: chosen.load(ctx, ids))


def load_jurisdictions(ctx: RequestContext, jurisdiction_ids: Iterable[str]) -> Dict[str, Jurisdiction]:
    rows = ctx.store.in_batches(
        jurisdiction_ids,
        lambda batch: select(Jurisdiction).where(Jurisdiction.id.in_(batch)),
        label="jurisdictions:details",
    )
    return {j.id: j for j in rows}


# -----------------------------
# Jurisdiction influence rows
# -----------------------------

def growth_rate(recent: int, total: int) -> float:
    """
    30-day growth as a percentage of the supporters who were already there.
    """
    previous = total - recent
    if previous > 0:
        return (recent / previous) * 100
    return 100.0 if recent > 0 else 0.0


def _upcoming_ballot_counts(ctx: RequestContext, jurisdiction_ids: List[str]):
    """
    Per-jurisdiction counts of elections, ballot items and races in the next
    default_days_ahead days. The election window is a join, so each batch
    binds only its jurisdiction ids.
    """
    start = ctx.today
    end = start + timedelta(days=ctx.settings.default_days_ahead)
    elections: Dict[str, Set[str]] = {}
    items: Dict[str, int] = {}
    races: Dict[str, int] = {}

    ballot_items = ctx.store.in_batches(
        jurisdiction_ids,
        lambda batch: select(BallotItem.id, BallotItem.jurisdiction_id, BallotItem.election_id)
        .join(Election, Election.id == BallotItem.election_id)
        .where(BallotItem.jurisdiction_id.in_(batch))
        .where(Election.poll_date >= start)
        .where(Election.poll_date <= end),
        label="jurisdictions:upcoming_ballot_items",
    )
    race_items = set(
        ctx.store.in_batches(
            (bi_id for bi_id, _jid, _eid in ballot_items),
            lambda batch: select(Race.ballot_item_id).where(Race.ballot_item_id.in_(batch)),
            label="jurisdictions:upcoming_races",
        )
    )

    for bi_id, jurisdiction_id, election_id in ballot_items:
        if not jurisdiction_id:
            continue
        elections.setdefault(jurisdiction_id, set()).add(election_id)
        items[jurisdiction_id] = items.get(jurisdiction_id, 0) + 1
        if bi_id in race_items:
            races[jurisdiction_id] = races.get(jurisdiction_id, 0) + 1
    return elections, items, races


def jurisdictions_with_influence(ctx: RequestContext, network_ids: Iterable[str]) -> List[JurisdictionInfluence]:
    supporter_map = supporters_by_jurisdiction(ctx, network_ids)
    if not supporter_map:
        logger.info("no supporters mapped to jurisdictions for network of %d groups", len(set(network_ids)))
        return []

    jurisdiction_ids = sorted(supporter_map)
    details, (elections, items, races) = ctx.gather(
        lambda: load_jurisdictions(ctx, jurisdiction_ids),
        lambda: _upcoming_ballot_counts(ctx, jurisdiction_ids),
    )
    if not details:
        logger.warning("no jurisdiction rows found for %d mapped jurisdiction ids", len(jurisdiction_ids))
        return []

    window_start = ctx.active_window_start
    results: List[JurisdictionInfluence] = []
    for jurisdiction_id in jurisdiction_ids:
        j = details.get(jurisdiction_id)
        if j is None:
            continue
        supporters = supporter_map[jurisdiction_id]
        count = supporters.supporter_count
        active = supporters.active_since(window_start)
        acquired = supporters.acquired_since(window_start)
        turnout = estimate_turnout(j.level)

        results.append(
            JurisdictionInfluence(
                jurisdiction_id=j.id,
                name=j.name or "Unknown",
                level=j.level,
                state=j.state,
                supporter_count=count,
                estimated_turnout=turnout,
                supporter_share=supporter_share(count, turnout),
                active_supporter_count=active,
                active_rate=(active / count) * 100 if count > 0 else 0.0,
                growth_30d=growth_rate(acquired, count),
                upcoming_elections_count=len(elections.get(j.id, ())),
                upcoming_ballot_items_count=items.get(j.id, 0),
                upcoming_races_count=races.get(j.id, 0),
            )
        )

    results.sort(key=lambda r: (r.name.lower(), r.jurisdiction_id))
    return results


# -----------------------------
# State rollup
# -----------------------------

def normalize_state_code(raw: Optional[str]) -> Optional[str]:
    code = (raw or "").strip().upper()
    return code if code in STATE_NAMES else None


def state_distribution(ctx: RequestContext, network_ids: Iterable[str]) -> List[StateDistribution]:
    """
    Supporters grouped by the two-letter state of their jurisdiction.
    Jurisdictions without a recognized code are left out, not coerced.
    """
    supporter_map = supporters_by_jurisdiction(ctx, network_ids)
    if not supporter_map:
        return []

    details = load_jurisdictions(ctx, supporter_map.keys())

    supporters_by_state: Dict[str, Set[str]] = {}
    jurisdictions_by_state: Dict[str, Set[str]] = {}
    for jurisdiction_id, supporters in supporter_map.items():
        j = details.get(jurisdiction_id)
        code = normalize_state_code(j.state if j else None)
        if code is None:
            continue
        supporters_by_state.setdefault(code, set()).update(supporters.profile_ids)
        jurisdictions_by_state.setdefault(code, set()).add(jurisdiction_id)

    rows = [
        StateDistribution(
            state=STATE_NAMES[code],
            state_code=code,
            supporter_count=len(profile_ids),
            jurisdiction_count=len(jurisdictions_by_state[code]),
        )
        for code, profile_ids in supporters_by_state.items()
    ]
    rows.sort(key=lambda r: (-r.supporter_count, r.state))
    return rows
