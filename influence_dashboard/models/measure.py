from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel

from .common import new_id


class Measure(SQLModel, table=True):
    """
    Ballot proposition.
    """

    __tablename__ = "measures"

    id: str = Field(default_factory=new_id, primary_key=True)

    ballot_item_id: str = Field(foreign_key="ballot_items.id", index=True)

    title: Optional[str] = Field(default=None)
    # Older imports only carry `name`
    name: Optional[str] = Field(default=None)
    summary: Optional[str] = Field(default=None)
    full_text: Optional[str] = Field(default=None)
    fiscal_impact: Optional[str] = Field(default=None)
    pro_snippet: Optional[str] = Field(default=None)
    con_snippet: Optional[str] = Field(default=None)

    influence_target_id: Optional[str] = Field(default=None, foreign_key="influence_targets.id", index=True)
