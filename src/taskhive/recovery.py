from typing import Any, NamedTuple, Optional


class TaskHiveError(Exception):
    """Base exception for all TaskHive errors."""
    pass

class RecoverableError(TaskHiveError):
    """An error that can be recovered from without data loss."""
    pass

class FatalError(TaskHiveError):
    """An error that requires application termination or major intervention."""
    pass

class CorruptionError(FatalError):
    """Corrupted Data Error - from syntax errors in data formats, to just unknown data"""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass

class MigrationNeededError(RecoverableError):
    """ Data is valid, but was written by an older schema version """
    pass

class NotAuthenticated(RecoverableError):
    """No resolvable session or profile."""
    pass

class ValidationError(RecoverableError):
    """A required field is missing or malformed."""
    pass

class PersistenceError(RecoverableError):
    """The backing store rejected the operation."""
    pass

class NotFound(RecoverableError):
    """A lookup did not resolve to a record."""
    pass

class PermissionDenied(RecoverableError):
    """The policy refused the action for this actor."""
    pass


class Result(NamedTuple):
    """Value/error pair handed to the presentation layer."""

    value: Any = None
    error: Optional[TaskHiveError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
