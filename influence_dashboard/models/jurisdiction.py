from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from .common import new_id


class JurisdictionLevel(str, Enum):
    COUNTRY = "country"
    STATE = "state"
    COUNTY = "county"
    CITY = "city"
    DISTRICT = "district"


class Jurisdiction(SQLModel, table=True):
    """
    Geographic / political boundary a voter is registered in.

    `level` drives turnout estimation; `state` is the two-letter abbreviation
    used for state rollups (rows without a recognized code are left out).
    """

    __tablename__ = "jurisdictions"

    id: str = Field(default_factory=new_id, primary_key=True)

    name: Optional[str] = Field(default=None, index=True)
    level: Optional[str] = Field(default=None, index=True, max_length=16)
    state: Optional[str] = Field(default=None, index=True, max_length=8)
