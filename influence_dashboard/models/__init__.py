# influence_dashboard/models/__init__.py
# Central import surface for SQLModel table registration.

from .viewpoint_group import ProfileGroupRelation, RelationType, ViewpointGroup
from .profile import Person, Profile
from .jurisdiction import Jurisdiction, JurisdictionLevel
from .voter import VoterVerification, VoterVerificationJurisdiction
from .election import BallotItem, Election
from .race import Candidacy, Office, OfficeTerm, Party, Race
from .measure import Measure
from .influence_target import InfluenceTarget, InfluenceTargetGroupRelation

# Precomputed rollups
from .rollup import RollupStatus, SupporterJurisdictionRollup, TimeSeriesRollup

__all__ = [
    "ViewpointGroup",
    "ProfileGroupRelation",
    "RelationType",
    "Person",
    "Profile",
    "Jurisdiction",
    "JurisdictionLevel",
    "VoterVerification",
    "VoterVerificationJurisdiction",
    "Election",
    "BallotItem",
    "Office",
    "OfficeTerm",
    "Party",
    "Race",
    "Candidacy",
    "Measure",
    "InfluenceTarget",
    "InfluenceTargetGroupRelation",
    "RollupStatus",
    "SupporterJurisdictionRollup",
    "TimeSeriesRollup",
]
