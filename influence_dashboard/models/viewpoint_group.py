from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .common import new_id, utcnow


class RelationType(str, Enum):
    """
    How a profile relates to a viewpoint group.

    - SUPPORTER: counts toward the group's supporter set
    - LEADER: seeds network expansion (a supporter of the root who leads
      another group pulls that group into the network)
    """

    SUPPORTER = "supporter"
    LEADER = "leader"
    ADMINISTRATOR = "administrator"
    BOOKMARKER = "bookmarker"
    DEFAULT = "default"


class ViewpointGroup(SQLModel, table=True):
    """
    A leader's coalition / movement. Created by onboarding, read-only here.
    """

    __tablename__ = "viewpoint_groups"

    id: str = Field(default_factory=new_id, primary_key=True)

    title: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)

    is_public: Optional[bool] = Field(default=None)
    is_searchable: Optional[bool] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)


class ProfileGroupRelation(SQLModel, table=True):
    """
    Many-to-many profile <-> viewpoint group, typed.

    Stored as the plain string value of RelationType so rows written by other
    producers ("supporter", "leader", ...) compare equal.
    """

    __tablename__ = "profile_viewpoint_group_rels"
    __table_args__ = (
        UniqueConstraint("profile_id", "viewpoint_group_id", "type", name="uq_profile_group_type"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)

    profile_id: str = Field(foreign_key="profiles.id", index=True)
    viewpoint_group_id: str = Field(foreign_key="viewpoint_groups.id", index=True)

    type: str = Field(default=RelationType.DEFAULT.value, index=True, max_length=32)

    created_at: datetime = Field(default_factory=utcnow, index=True)
