"""
Engine error taxonomy.

Services raise these; routers map them onto HTTP status codes. Each carries a
stable upper-case ``code`` so API clients can branch without parsing prose.
"""


class EngineError(Exception):
    code = "ENGINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InputValidationError(EngineError):
    code = "INVALID_INPUT"


class MatchNotFoundError(EngineError):
    code = "MATCH_NOT_FOUND"


class CategoryNotFoundError(EngineError):
    code = "CATEGORY_NOT_FOUND"


class CourtNotFoundError(EngineError):
    code = "COURT_NOT_FOUND"


class MatchStateError(EngineError):
    code = "MATCH_STATE_VIOLATION"


class TieScoreError(MatchStateError):
    code = "TIE_NOT_ALLOWED"


class RegenerationBlockedError(EngineError):
    code = "REGENERATION_BLOCKED"

    def __init__(self, blocking_count: int):
        super().__init__(
            f"{blocking_count} match(es) already in progress or completed; "
            "reassign courts instead, or finish the category before regenerating"
        )
        self.blocking_count = blocking_count
