from __future__ import annotations

from datetime import date
from typing import Optional

from sqlmodel import Field, SQLModel

from .common import new_id


class Election(SQLModel, table=True):
    __tablename__ = "elections"

    id: str = Field(default_factory=new_id, primary_key=True)

    name: Optional[str] = Field(default=None)
    # date-only; time-of-day never participates in window checks
    poll_date: Optional[date] = Field(default=None, index=True)
    description: Optional[str] = Field(default=None)


class BallotItem(SQLModel, table=True):
    """
    Ballot-facing wrapper around exactly one Race or one Measure.
    """

    __tablename__ = "ballot_items"

    id: str = Field(default_factory=new_id, primary_key=True)

    election_id: str = Field(foreign_key="elections.id", index=True)
    jurisdiction_id: Optional[str] = Field(default=None, foreign_key="jurisdictions.id", index=True)

    title: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
