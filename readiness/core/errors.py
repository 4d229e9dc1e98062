"""
Engine exceptions.

Routes translate these into HTTP errors; the scoring core itself only ever
raises InvalidShapeError.
"""


class ReadinessError(Exception):
    """Base class for all engine errors."""


class InvalidShapeError(ReadinessError, ValueError):
    """A student/job field is present but not of the expected shape."""

    def __init__(self, field: str, expected: str, got=None):
        self.field = field
        self.expected = expected
        message = f"Field '{field}' must be {expected}"
        if got is not None:
            message += f", got {type(got).__name__}"
        super().__init__(message)


class StudentNotFoundError(ReadinessError, LookupError):
    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"Student not found: {student_id}")


class JobNotFoundError(ReadinessError, LookupError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class ItemNotFoundError(ReadinessError, LookupError):
    def __init__(self, collection: str, item_id: str):
        self.collection = collection
        self.item_id = item_id
        super().__init__(f"No item '{item_id}' in {collection}")


class ConcurrentUpdateError(ReadinessError):
    """The document changed between load and save (version mismatch)."""


class StorageError(ReadinessError):
    """Wraps a failure of the underlying document store."""
