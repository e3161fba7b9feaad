"""
Map service-layer EngineError subclasses onto HTTP responses.
"""
from fastapi import HTTPException

from courtside.services.errors import (
    CategoryNotFoundError,
    CourtNotFoundError,
    EngineError,
    InputValidationError,
    MatchNotFoundError,
    MatchStateError,
    RegenerationBlockedError,
)

_STATUS_BY_ERROR = (
    (MatchNotFoundError, 404),
    (CategoryNotFoundError, 404),
    (CourtNotFoundError, 404),
    (InputValidationError, 422),
    (MatchStateError, 409),
)


def http_error(exc: EngineError) -> HTTPException:
    if isinstance(exc, RegenerationBlockedError):
        return HTTPException(
            status_code=409,
            detail={
                "code": exc.code,
                "message": exc.message,
                "blocking_count": exc.blocking_count,
            },
        )
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
