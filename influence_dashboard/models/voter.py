from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .common import new_id, utcnow


class VoterVerification(SQLModel, table=True):
    """
    A person's verified voter registration. A person may have several.
    """

    __tablename__ = "voter_verifications"

    id: str = Field(default_factory=new_id, primary_key=True)
    person_id: str = Field(foreign_key="persons.id", index=True)

    verified_at: Optional[datetime] = Field(default_factory=utcnow)


class VoterVerificationJurisdiction(SQLModel, table=True):
    """
    Junction: which jurisdictions a verification places the voter in.
    """

    __tablename__ = "voter_verification_jurisdiction_rels"

    voter_verification_id: str = Field(foreign_key="voter_verifications.id", primary_key=True)
    jurisdiction_id: str = Field(foreign_key="jurisdictions.id", primary_key=True, index=True)
