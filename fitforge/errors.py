"""
Error types shared by the plan generator and the SQLite stores.
"""


class ErrorKind:
    """Failure tags reported by the plan generator and trainer chat."""

    INVALID_INPUT = "invalid_input"
    GENERATION_FAILED = "generation_failed"
    SCHEMA_VIOLATION = "schema_violation"
    EXERCISE_CREATION_FAILED = "exercise_creation_failed"
    UNRESOLVED_EXERCISES = "unresolved_exercises"


class PlanGenerationError(Exception):
    """Raised inside the generator; converted to a failure result at the boundary."""

    def __init__(self, kind, message):
        super().__init__(message)
        self.kind = kind
        self.message = message


class TextGenerationError(Exception):
    """The text-generation service failed, timed out, or returned unusable content."""


class StoreError(Exception):
    """Base class for store failures other than input validation."""


class NotFoundError(StoreError):
    """Row does not exist (or is not visible to the caller)."""


class NotAuthorizedError(StoreError):
    """Row exists but belongs to another user."""


class DuplicateExerciseError(StoreError):
    """An exercise with this exact name already exists."""

    def __init__(self, name):
        super().__init__("An exercise with this name already exists")
        self.name = name
