from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel

from .common import new_id


class Office(SQLModel, table=True):
    __tablename__ = "offices"

    id: str = Field(default_factory=new_id, primary_key=True)

    name: Optional[str] = Field(default=None)
    level: Optional[str] = Field(default=None)
    district: Optional[str] = Field(default=None)


class OfficeTerm(SQLModel, table=True):
    __tablename__ = "office_terms"

    id: str = Field(default_factory=new_id, primary_key=True)
    office_id: Optional[str] = Field(default=None, foreign_key="offices.id", index=True)


class Party(SQLModel, table=True):
    __tablename__ = "parties"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: Optional[str] = Field(default=None)


class Race(SQLModel, table=True):
    """
    Election contest for an office term.
    """

    __tablename__ = "races"

    id: str = Field(default_factory=new_id, primary_key=True)

    ballot_item_id: str = Field(foreign_key="ballot_items.id", index=True)
    office_term_id: Optional[str] = Field(default=None, foreign_key="office_terms.id", index=True)
    party_id: Optional[str] = Field(default=None, foreign_key="parties.id")

    is_partisan: Optional[bool] = Field(default=None)
    is_primary: Optional[bool] = Field(default=None)

    influence_target_id: Optional[str] = Field(default=None, foreign_key="influence_targets.id", index=True)


class Candidacy(SQLModel, table=True):
    """
    Candidate on a race. Withdrawn candidacies stay in the roster (is_withdrawn).
    """

    __tablename__ = "candidacies"

    id: str = Field(default_factory=new_id, primary_key=True)

    race_id: str = Field(foreign_key="races.id", index=True)
    candidate_id: str = Field(foreign_key="persons.id", index=True)
    party_id: Optional[str] = Field(default=None, foreign_key="parties.id")

    status: Optional[str] = Field(default=None)
    is_withdrawn: Optional[bool] = Field(default=None)
    result: Optional[str] = Field(default=None)
