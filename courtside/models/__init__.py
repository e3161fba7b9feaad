from courtside.models.category import Category, CategoryFormat
from courtside.models.court import Court
from courtside.models.match import Match, MatchStatus
from courtside.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Category",
    "CategoryFormat",
    "Court",
    "Match",
    "MatchStatus",
]
