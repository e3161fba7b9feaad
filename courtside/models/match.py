from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.category import Category
    from courtside.models.tournament import Tournament

STAGE_GROUP = "group"
STAGE_KNOCKOUT = "knockout"

SLOT_P1 = "p1"
SLOT_P2 = "p2"


class MatchStatus:
    """Persisted match lifecycle values, in lifecycle order."""

    PENDING_PLAYER = "PENDING_PLAYER"  # one or both slots empty
    PENDING_COURT = "PENDING_COURT"  # both participants known, no court
    SCHEDULED = "SCHEDULED"  # court assigned, not started
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

    UNSTARTED = (PENDING_PLAYER, PENDING_COURT, SCHEDULED)
    STARTED = (IN_PROGRESS, COMPLETED)


def new_match_id() -> str:
    return uuid4().hex


def empty_score() -> Dict[str, int]:
    return {"player1": 0, "player2": 0}


class Match(SQLModel, table=True):
    # Ids are minted by the bracket builder so graph edges can be wired before insert
    id: str = Field(default_factory=new_match_id, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: int = Field(foreign_key="category.id", index=True)

    # Placement
    stage: str = Field(default=STAGE_KNOCKOUT)  # "group" | "knockout"
    round: float = Field(default=1)  # third-place match sits at final round - 0.5
    match_order: int = Field(default=1)  # priority within its round
    group_label: Optional[str] = Field(default=None)
    round_label: Optional[str] = Field(default=None)  # RoundLabel code: FI | 3RD | SF | QF | R16 ...

    # Participant slots
    player1_id: Optional[str] = Field(default=None)
    player1_name: Optional[str] = Field(default=None)
    player1_placeholder: Optional[str] = Field(default=None)  # e.g. "A1" until qualifiers resolve
    player2_id: Optional[str] = Field(default=None)
    player2_name: Optional[str] = Field(default=None)
    player2_placeholder: Optional[str] = Field(default=None)
    winner_id: Optional[str] = Field(default=None)

    # Graph edges
    next_match_id: Optional[str] = Field(default=None, foreign_key="match.id")
    next_match_slot: Optional[str] = Field(default=None)  # "p1" | "p2"
    loser_next_match_id: Optional[str] = Field(default=None, foreign_key="match.id")
    loser_next_match_slot: Optional[str] = Field(default=None)

    court_id: Optional[int] = Field(default=None, foreign_key="court.id", index=True)
    status: str = Field(default=MatchStatus.PENDING_PLAYER, index=True)

    # Running score + append-only action log (newest entry last)
    score_json: Dict[str, Any] = Field(default_factory=empty_score, sa_column=Column(JSON, nullable=False))
    timeline_json: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    rule_config: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
    category: "Category" = Relationship(back_populates="matches")

    def slot_player(self, slot: str) -> Optional[str]:
        return self.player1_id if slot == SLOT_P1 else self.player2_id

    @property
    def has_both_players(self) -> bool:
        return self.player1_id is not None and self.player2_id is not None

    @property
    def is_bye(self) -> bool:
        """Round-1 knockout match with one real participant and nothing pending for the other slot."""
        if self.stage != STAGE_KNOCKOUT or self.round != 1:
            return False
        if self.player1_id is None and self.player2_id is None:
            return False
        if self.player1_id is None:
            return self.player1_placeholder is None
        if self.player2_id is None:
            return self.player2_placeholder is None
        return False
