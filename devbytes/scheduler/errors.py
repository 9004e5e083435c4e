"""Exceptions raised by the scheduler."""

from devbytes.refresh.models import FailureKind


class SchedulerError(Exception):
    """Base exception for scheduler errors."""


class ScheduleConflictError(SchedulerError):
    """Raised when a name is re-registered in a way the existing series cannot honor.

    A KEEP registration bound to a different task than the active series
    would silently keep the wrong job, so it is rejected.
    """

    failure_kind = FailureKind.SCHEDULE_CONFLICT

    def __init__(self, name: str, reason: str) -> None:
        """Initialize the error.

        Args:
            name: The schedule name.
            reason: Why the registration is incompatible.
        """
        self.name = name
        self.reason = reason
        super().__init__(f"Schedule conflict for {name!r}: {reason}")
