"""Exceptions raised by the backup rotator."""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .rotator import TableResult


class BackupRotatorError(Exception):
    """Base class for backup rotator errors."""


class InvalidConfiguration(BackupRotatorError):
    """Retention settings are missing or out of range."""


class BackupServiceError(BackupRotatorError):
    """
    A call to the backup service failed.

    Attributes:
        operation: Service operation that failed (e.g. "DeleteBackup")
        code: Service error code, when the service returned one
    """

    def __init__(self, message: str, operation: str = "", code: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.code = code


class BackupNotFound(BackupServiceError):
    """The backup is unknown to the service (already deleted)."""


class PartialCycleFailure(BackupRotatorError):
    """
    At least one table did not complete its rotation cycle.

    Other tables may have completed theirs. ``failures`` holds the
    TableResult of each failed table.
    """

    def __init__(self, failures: List["TableResult"]):
        self.failures = failures
        names = ", ".join(f.table_name for f in failures)
        super().__init__(f"{len(failures)} table(s) failed rotation: {names}")
