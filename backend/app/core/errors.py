"""Error taxonomy shared by the training services.

Reads never raise for missing records; they return ``None`` or an empty list.
"""

from __future__ import annotations


class TrainingServiceError(Exception):
    pass


class ValidationError(TrainingServiceError):
    """A required argument was missing or malformed. Raised before any store access."""


class PersistenceError(TrainingServiceError):
    """The document store rejected a read or write.

    ``completed`` names the writes that went through before the failure, so a
    half-applied dual write can be reported precisely.
    """

    def __init__(self, message: str, *, completed: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.completed = completed


class SkillPropagationError(PersistenceError):
    pass


class InvalidTransitionError(TrainingServiceError):
    pass


class ProgramInUseError(TrainingServiceError):
    pass
