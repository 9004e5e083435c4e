"""A named, periodic refresh series."""

import uuid
from collections.abc import Callable
from concurrent.futures import Future
from datetime import datetime, timedelta

from devbytes.refresh.models import FailureKind, RefreshResult
from devbytes.scheduler.models import ScheduleConstraints
from devbytes.scheduler.state_machine import SeriesState, SeriesStateMachine
from devbytes.store.models import ScheduleRecord


RefreshTask = Callable[[], "Future[RefreshResult]"]


class ScheduledSeries:
    """Runtime state of one registered schedule.

    Mutated only by ``RefreshScheduler`` while it holds its lock; callers
    get read-only properties.
    """

    def __init__(
        self,
        name: str,
        period: timedelta,
        constraints: ScheduleConstraints,
        task: RefreshTask,
        next_fire_at: datetime,
    ) -> None:
        self.series_id = uuid.uuid4().hex[:12]
        self._name = name
        self._period = period
        self._constraints = constraints
        self._task = task
        self._machine = SeriesStateMachine(name, self.series_id)
        self.next_fire_at = next_fire_at
        # Scheduled fire time of the current period; retries keep it
        self.period_anchor = next_fire_at
        self.failures = 0
        self.last_result: RefreshResult | None = None
        self.last_success_at: datetime | None = None
        self.last_failure_kind: FailureKind | None = None
        self.current_future: Future[RefreshResult] | None = None
        self.runs = 0

    @property
    def name(self) -> str:
        """Schedule name."""
        return self._name

    @property
    def period(self) -> timedelta:
        """Time between periodic runs."""
        return self._period

    @property
    def constraints(self) -> ScheduleConstraints:
        """Constraints gating each run."""
        return self._constraints

    @property
    def task(self) -> RefreshTask:
        """Callable starting (or joining) a refresh."""
        return self._task

    @property
    def state(self) -> SeriesState:
        """Current series state."""
        return self._machine.state

    @property
    def cancelled(self) -> bool:
        """Check if the series was cancelled or replaced."""
        return self._machine.is_cancelled()

    def transition(self, to_state: SeriesState) -> None:
        """Move to ``to_state``, enforcing the series state machine."""
        self._machine.transition(to_state)

    def advance_period(self, now: datetime) -> None:
        """Set the next fire time to the first period boundary after ``now``."""
        next_fire = self.period_anchor + self._period
        while next_fire <= now:
            next_fire += self._period
        self.period_anchor = next_fire
        self.next_fire_at = next_fire

    def to_record(self, now: datetime) -> ScheduleRecord:
        """Snapshot the persistent part of the series."""
        return ScheduleRecord(
            name=self._name,
            period_seconds=self._period.total_seconds(),
            constraints_json=self._constraints.to_json(),
            next_fire_at=self.next_fire_at,
            period_anchor_at=self.period_anchor,
            attempt=self.failures,
            last_success_at=self.last_success_at,
            last_failure_kind=(
                self.last_failure_kind.value if self.last_failure_kind else None
            ),
            updated_at=now,
        )

    def __repr__(self) -> str:
        return (
            f"ScheduledSeries(name={self._name!r}, state={self.state.name}, "
            f"period={self._period}, next_fire_at={self.next_fire_at.isoformat()})"
        )
