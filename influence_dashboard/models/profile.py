from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .common import new_id, utcnow


class Person(SQLModel, table=True):
    """
    Real identity. Required for candidates; anonymized for ordinary supporters.
    """

    __tablename__ = "persons"

    id: str = Field(default_factory=new_id, primary_key=True)
    full_name: Optional[str] = Field(default=None)


class Profile(SQLModel, table=True):
    """
    Public persona. Supporter identity is always the profile id, never the
    person id (one person may own several profiles; we do not merge them).
    """

    __tablename__ = "profiles"

    id: str = Field(default_factory=new_id, primary_key=True)
    display_name: Optional[str] = Field(default=None)

    person_id: Optional[str] = Field(default=None, foreign_key="persons.id", index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
