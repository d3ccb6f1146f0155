from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel

from .common import new_id


class InfluenceTarget(SQLModel, table=True):
    """
    Something a leader can prioritize. Exactly one of office_id / measure_id is set.

    NOTE: measure_id carries no FK; measures already point here and SQLite
    create_all cannot order a two-way FK cycle.
    """

    __tablename__ = "influence_targets"

    id: str = Field(default_factory=new_id, primary_key=True)

    office_id: Optional[str] = Field(default=None, foreign_key="offices.id", index=True)
    measure_id: Optional[str] = Field(default=None, index=True)


class InfluenceTargetGroupRelation(SQLModel, table=True):
    """
    Leader-assigned priority of an influence target for a viewpoint group.
    weight is expected in [0, 1].
    """

    __tablename__ = "influence_target_viewpoint_group_rels"

    influence_target_id: str = Field(foreign_key="influence_targets.id", primary_key=True)
    viewpoint_group_id: str = Field(foreign_key="viewpoint_groups.id", primary_key=True, index=True)

    weight: Optional[float] = Field(default=None)
