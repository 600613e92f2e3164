from __future__ import annotations

from fastapi import HTTPException, status

from app.core.errors import (
    InvalidTransitionError,
    PersistenceError,
    ProgramInUseError,
    TrainingServiceError,
    ValidationError,
)


def to_http_exception(err: TrainingServiceError) -> HTTPException:
    if isinstance(err, ValidationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(err, InvalidTransitionError | ProgramInUseError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(err, PersistenceError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(err))


def not_found(kind: str, item_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{kind} '{item_id}' not found",
    )
