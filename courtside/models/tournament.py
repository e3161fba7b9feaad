from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.category import Category
    from courtside.models.court import Court
    from courtside.models.match import Match


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    categories: List["Category"] = Relationship(back_populates="tournament")
    courts: List["Court"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
