"""Scheduler deciding when the refresh pipeline runs."""

from devbytes.scheduler.backoff import BackoffKind, BackoffPolicy
from devbytes.scheduler.constraints import (
    AlwaysSatisfied,
    ConstraintChecker,
    DeviceConditions,
)
from devbytes.scheduler.errors import ScheduleConflictError, SchedulerError
from devbytes.scheduler.models import ConflictPolicy, ScheduleConstraints
from devbytes.scheduler.scheduler import RefreshScheduler
from devbytes.scheduler.series import RefreshTask, ScheduledSeries
from devbytes.scheduler.state_machine import (
    SeriesState,
    SeriesStateError,
    SeriesStateMachine,
)


__all__ = [
    "AlwaysSatisfied",
    "BackoffKind",
    "BackoffPolicy",
    "ConflictPolicy",
    "ConstraintChecker",
    "DeviceConditions",
    "RefreshScheduler",
    "RefreshTask",
    "ScheduleConflictError",
    "ScheduleConstraints",
    "ScheduledSeries",
    "SchedulerError",
    "SeriesState",
    "SeriesStateError",
    "SeriesStateMachine",
]
