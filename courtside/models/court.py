from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.tournament import Tournament

COURT_IDLE = "IDLE"
COURT_IN_USE = "IN_USE"


class Court(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    order: int = Field(default=1)  # Display order; lower order is allocated first

    status: str = Field(default=COURT_IDLE)  # IDLE | IN_USE
    # Occupying match (no FK: match.court_id already points back at court)
    current_match_id: Optional[str] = Field(default=None, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="courts")
