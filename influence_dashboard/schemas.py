from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field as PydField


# -----------------------------
# Viewpoint groups / network
# -----------------------------

class ViewpointGroupOut(BaseModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None
    is_searchable: Optional[bool] = None
    created_at: Optional[datetime] = None


class ViewpointGroupNetwork(BaseModel):
    primary_group_id: str
    sub_group_ids: List[str]
    all_group_ids: List[str]


# -----------------------------
# Jurisdictions
# -----------------------------

class JurisdictionInfluence(BaseModel):
    jurisdiction_id: str
    name: str
    level: Optional[str] = None
    state: Optional[str] = None

    supporter_count: int
    estimated_turnout: Optional[int] = None
    supporter_share: Optional[float] = None  # percentage (0-100)

    active_supporter_count: int = 0
    active_rate: float = 0.0  # percentage (0-100)
    growth_30d: float = 0.0  # percentage change

    upcoming_elections_count: int = 0
    upcoming_ballot_items_count: int = 0
    upcoming_races_count: int = 0


class StateDistribution(BaseModel):
    state: str
    state_code: str
    supporter_count: int
    jurisdiction_count: int


# -----------------------------
# Ballot items (tagged variant on `type`)
# -----------------------------

class CandidateOut(BaseModel):
    candidacy_id: str
    candidate_id: str
    candidate_name: Optional[str] = None
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    status: Optional[str] = None
    is_withdrawn: Optional[bool] = None
    result: Optional[str] = None


class RaceDetail(BaseModel):
    race_id: str
    office_term_id: Optional[str] = None
    office_name: Optional[str] = None
    office_level: Optional[str] = None
    office_district: Optional[str] = None
    candidates: List[CandidateOut] = PydField(default_factory=list)
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    is_partisan: Optional[bool] = None
    is_primary: Optional[bool] = None


class MeasureDetail(BaseModel):
    measure_id: str
    title: Optional[str] = None
    summary: Optional[str] = None
    full_text: Optional[str] = None
    fiscal_impact: Optional[str] = None
    pro_snippet: Optional[str] = None
    con_snippet: Optional[str] = None


class _BallotItemBase(BaseModel):
    ballot_item_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    jurisdiction_id: str
    jurisdiction_name: Optional[str] = None
    supporter_count: int = 0
    influence_score: float = 0.0  # 0-100


class RaceBallotItem(_BallotItemBase):
    type: Literal["race"] = "race"
    race: RaceDetail


class MeasureBallotItem(_BallotItemBase):
    type: Literal["measure"] = "measure"
    measure: MeasureDetail


class UnclassifiedBallotItem(_BallotItemBase):
    """
    Ballot item with neither a race nor a measure row (data-quality gap).
    """

    type: Literal["unclassified"] = "unclassified"


BallotItemView = Annotated[
    Union[RaceBallotItem, MeasureBallotItem, UnclassifiedBallotItem],
    PydField(discriminator="type"),
]


# -----------------------------
# Elections
# -----------------------------

class ElectionInfluence(BaseModel):
    election_id: str
    name: str
    poll_date: Optional[date] = None
    description: Optional[str] = None

    supporters_in_scope: int
    supporter_share_in_scope: Optional[float] = None  # percentage
    is_high_leverage: bool = False
    influence_target_count: int = 0  # items scoring above 50

    ballot_items_count: int = 0
    races_count: int = 0
    measures_count: int = 0
    unclassified_count: int = 0

    ballot_items: List[BallotItemView] = PydField(default_factory=list)


class ElectionSummary(BaseModel):
    supporters_in_scope: int
    supporter_share_in_scope: Optional[float] = None
    total_ballot_items: int
    races_count: int = 0
    measures_count: int = 0
    unclassified_count: int = 0


class JurisdictionBreakdown(BaseModel):
    jurisdiction_id: str
    jurisdiction_name: str
    supporter_count: int
    supporter_share: Optional[float] = None


class ElectionDetail(BaseModel):
    election_id: str
    name: str
    poll_date: Optional[date] = None
    description: Optional[str] = None
    summary: ElectionSummary
    ballot_items: List[BallotItemView] = PydField(default_factory=list)
    top_races: List[RaceBallotItem] = PydField(default_factory=list)
    jurisdiction_breakdown: List[JurisdictionBreakdown] = PydField(default_factory=list)


# -----------------------------
# Time series
# -----------------------------

PeriodType = Literal["daily", "weekly", "monthly"]


class TimeSeriesPoint(BaseModel):
    date: str  # ISO date of the period end
    period: str  # "2024-04", "2024-W15", "2024-04-09"
    new_supporters: int
    cumulative_supporters: int
    active_supporters: int


class TimeSeriesData(BaseModel):
    data: List[TimeSeriesPoint]
    period_type: PeriodType


# -----------------------------
# Summary
# -----------------------------

class TopJurisdiction(BaseModel):
    jurisdiction_id: str
    name: str
    supporter_count: int
    supporter_share: Optional[float] = None


class SummaryMetrics(BaseModel):
    total_supporters: int
    active_supporters: int
    active_rate: float  # percentage (0-100)
    top_jurisdiction: Optional[TopJurisdiction] = None
    top_state: Optional[StateDistribution] = None
    high_leverage_elections_count: int = 0
    total_ballot_items: int = 0
