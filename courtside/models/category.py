from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.match import Match
    from courtside.models.tournament import Tournament


class CategoryFormat(str, Enum):
    knockout_only = "knockout_only"
    group_then_knockout = "group_then_knockout"
    round_robin = "round_robin"


class Category(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "name", name="uq_tournament_category"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    format: CategoryFormat = Field(default=CategoryFormat.knockout_only, sa_column=Column(String, nullable=False))

    # Group-then-knockout sizing (ignored by the other formats)
    group_count: Optional[int] = Field(default=None)
    advance_per_group: Optional[int] = Field(default=None)
    knockout_size: Optional[int] = Field(default=None)

    enable_third_place: bool = Field(default=False)

    # Scoring rules are copied onto generated matches, never interpreted here
    rule_config: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="categories")
    matches: List["Match"] = Relationship(back_populates="category")
