"""Periodic, constraint-gated refresh scheduler."""

import threading
from collections.abc import Callable
from concurrent.futures import Future
from datetime import UTC, datetime, timedelta
from functools import partial

import structlog

from devbytes.refresh.models import FailureKind, RefreshResult
from devbytes.refresh.pipeline import RefreshPipeline
from devbytes.scheduler.backoff import BackoffPolicy
from devbytes.scheduler.constraints import AlwaysSatisfied, ConstraintChecker
from devbytes.scheduler.errors import ScheduleConflictError
from devbytes.scheduler.models import ConflictPolicy, ScheduleConstraints
from devbytes.scheduler.series import RefreshTask, ScheduledSeries
from devbytes.scheduler.state_machine import SeriesState
from devbytes.store.errors import CacheStoreError
from devbytes.store.models import ScheduleRecord
from devbytes.store.store import CacheStore


logger = structlog.get_logger()

DEFAULT_CONSTRAINT_RECHECK_SECONDS = 15 * 60.0

# Upper bound on one timer wait, so wall clock jumps are noticed
MAX_WAIT_SECONDS = 60.0


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _as_timedelta(value: timedelta | float) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=value)


class RefreshScheduler:
    """Decides when refreshes run.

    One background thread drives every series timer. When a series is due
    and its constraints are satisfied the scheduler starts the series task
    (by default ``RefreshPipeline.refresh_now``) and learns the outcome
    from the returned future's callback, so the timer thread never waits on
    a refresh. Failures move the series to BACKOFF; successes move it back
    to IDLE until the next period boundary.

    ``run_pending`` performs one tick and can be driven directly with an
    injected clock instead of starting the thread.
    """

    def __init__(
        self,
        pipeline: RefreshPipeline | None = None,
        checker: ConstraintChecker | None = None,
        store: CacheStore | None = None,
        backoff: BackoffPolicy | None = None,
        constraint_recheck_seconds: float = DEFAULT_CONSTRAINT_RECHECK_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            pipeline: Pipeline whose ``refresh_now`` is the default task.
            checker: Host signal for constraint satisfaction.
            store: Store used to persist and resume schedule state.
            backoff: Retry policy after failed refreshes.
            constraint_recheck_seconds: Delay before re-evaluating unmet
                constraints.
            clock: Source of the current UTC time.
        """
        self._pipeline = pipeline
        self._checker: ConstraintChecker = checker or AlwaysSatisfied()
        self._store = store
        self._backoff = backoff or BackoffPolicy()
        self._recheck = timedelta(seconds=constraint_recheck_seconds)
        self._clock = clock or _utc_now
        self._series: dict[str, ScheduledSeries] = {}
        self._lock = threading.RLock()
        self._wakeup = threading.Condition(self._lock)
        self._thread: threading.Thread | None = None
        self._stopping = False
        self._closed = False
        self._log = logger.bind(component="scheduler")

    @property
    def is_running(self) -> bool:
        """Check if the timer thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def get_series(self, name: str) -> ScheduledSeries | None:
        """Get the active series registered under ``name``."""
        with self._lock:
            return self._series.get(name)

    def list_series(self) -> list[ScheduledSeries]:
        """List active series ordered by name."""
        with self._lock:
            return [self._series[name] for name in sorted(self._series)]

    # ===== Registration =====

    def schedule(
        self,
        name: str,
        period: timedelta | float,
        constraints: ScheduleConstraints | None = None,
        on_conflict: ConflictPolicy = ConflictPolicy.KEEP,
        *,
        initial_delay: timedelta | float = 0.0,
        task: RefreshTask | None = None,
    ) -> ScheduledSeries:
        """Register a named periodic refresh.

        With KEEP an active series of the same name is returned unchanged,
        and after a restart a persisted series resumes from its stored
        period, constraints and next fire time. With REPLACE the active
        series is cancelled (its in-flight refresh still completes) and the
        new period and constraints take effect.

        Args:
            name: Unique schedule name.
            period: Time between runs (timedelta or seconds).
            constraints: Conditions gating each run.
            on_conflict: Policy for an already registered name.
            initial_delay: Delay before the first run of a new series.
            task: Refresh callable returning a future without waiting for
                the refresh; defaults to the pipeline's ``refresh_now``.

        Returns:
            The active series for ``name``.

        Raises:
            ScheduleConflictError: If KEEP meets a series running another task.
            ValueError: If the period is not positive or no task is available.
            RuntimeError: If the scheduler was shut down.
        """
        period_td = _as_timedelta(period)
        if period_td <= timedelta(0):
            msg = f"Schedule period must be positive, got {period_td}"
            raise ValueError(msg)
        if task is None:
            if self._pipeline is None:
                msg = "A task is required when the scheduler has no pipeline"
                raise ValueError(msg)
            task = self._pipeline.refresh_now
        constraints = constraints or ScheduleConstraints()

        with self._lock:
            if self._closed:
                msg = "Scheduler is shut down"
                raise RuntimeError(msg)

            now = self._clock()
            existing = self._series.get(name)
            if existing is not None:
                if on_conflict == ConflictPolicy.KEEP:
                    if existing.task != task:
                        raise ScheduleConflictError(
                            name, "the active series runs a different task"
                        )
                    self._log.info(
                        "schedule_kept",
                        schedule=name,
                        series_id=existing.series_id,
                        period_seconds=existing.period.total_seconds(),
                    )
                    return existing

                self._cancel_locked(existing, reason="replaced")
                del self._series[name]

            record = (
                self._load_record(name) if on_conflict == ConflictPolicy.KEEP else None
            )
            if record is not None:
                series = self._resume(record, task)
            else:
                series = ScheduledSeries(
                    name=name,
                    period=period_td,
                    constraints=constraints,
                    task=task,
                    next_fire_at=now + _as_timedelta(initial_delay),
                )

            self._series[name] = series
            self._persist(series, now)
            self._wakeup.notify_all()

        self._log.info(
            "schedule_registered",
            schedule=name,
            series_id=series.series_id,
            on_conflict=on_conflict.value,
            resumed=record is not None,
            period_seconds=series.period.total_seconds(),
            constraints=series.constraints.required,
            next_fire_at=series.next_fire_at.isoformat(),
        )
        return series

    def cancel(self, name: str) -> bool:
        """Cancel and forget a series, including its persisted state.

        Returns:
            True if a series was cancelled.
        """
        with self._lock:
            series = self._series.pop(name, None)
            if series is None:
                return False
            self._cancel_locked(series, reason="cancelled")
            self._wakeup.notify_all()

        if self._store is not None:
            try:
                self._store.delete_schedule_record(name)
            except CacheStoreError as e:
                self._log.warning("schedule_delete_failed", schedule=name, error=str(e))
        return True

    def _cancel_locked(self, series: ScheduledSeries, reason: str) -> None:
        series.transition(SeriesState.CANCELLED)
        self._log.info(
            "series_cancelled",
            schedule=series.name,
            series_id=series.series_id,
            reason=reason,
            refresh_in_flight=series.current_future is not None,
        )

    def _resume(self, record: ScheduleRecord, task: RefreshTask) -> ScheduledSeries:
        series = ScheduledSeries(
            name=record.name,
            period=timedelta(seconds=record.period_seconds),
            constraints=ScheduleConstraints.from_json(record.constraints_json),
            task=task,
            next_fire_at=record.next_fire_at,
        )
        series.period_anchor = record.period_anchor_at or record.next_fire_at
        series.failures = record.attempt
        series.last_success_at = record.last_success_at
        if record.last_failure_kind:
            series.last_failure_kind = FailureKind(record.last_failure_kind)
        return series

    # ===== Ticks =====

    def run_pending(self, now: datetime | None = None) -> "list[Future[RefreshResult]]":
        """Start every due series whose constraints are satisfied.

        Args:
            now: Current time (defaults to the scheduler clock).

        Returns:
            Futures of the refreshes started by this tick.
        """
        now = now or self._clock()
        due: list[ScheduledSeries] = []

        with self._lock:
            for series in list(self._series.values()):
                if series.state in (SeriesState.RUNNING, SeriesState.CANCELLED):
                    continue
                if series.next_fire_at > now:
                    continue

                if series.state != SeriesState.CONSTRAINTS_PENDING:
                    series.transition(SeriesState.CONSTRAINTS_PENDING)

                if not self._checker.is_satisfied(series.constraints):
                    series.next_fire_at = now + self._recheck
                    self._log.info(
                        "constraints_not_satisfied",
                        schedule=series.name,
                        constraints=series.constraints.required,
                        recheck_at=series.next_fire_at.isoformat(),
                    )
                    self._persist(series, now)
                    continue

                series.transition(SeriesState.RUNNING)
                due.append(series)

        futures: list[Future[RefreshResult]] = []
        for series in due:
            with self._lock:
                # Cancelled or replaced since it was collected
                if series.cancelled:
                    continue
                try:
                    future = series.task()
                except Exception as e:  # noqa: BLE001
                    self._log.error(
                        "series_task_failed_to_start",
                        schedule=series.name,
                        error=str(e),
                    )
                    self._apply_outcome(series, None)
                    continue
                series.current_future = future

            future.add_done_callback(partial(self._on_complete, series))
            futures.append(future)

        return futures

    def _on_complete(self, series: ScheduledSeries, future: "Future[RefreshResult]") -> None:
        try:
            result = future.result()
        except Exception as e:  # noqa: BLE001
            self._log.error("series_task_raised", schedule=series.name, error=str(e))
            result = None
        self._apply_outcome(series, result)

    def _apply_outcome(self, series: ScheduledSeries, result: RefreshResult | None) -> None:
        with self._lock:
            series.current_future = None
            if series.cancelled:
                self._log.info(
                    "series_result_discarded",
                    schedule=series.name,
                    series_id=series.series_id,
                    success=result.success if result else False,
                )
                return

            now = self._clock()
            series.runs += 1
            series.last_result = result

            if result is not None and result.success:
                series.failures = 0
                series.last_success_at = now
                series.last_failure_kind = None
                series.transition(SeriesState.IDLE)
                series.advance_period(now)
            else:
                kind = result.failure_kind if result and result.failure_kind else None
                series.failures += 1
                series.last_failure_kind = kind or FailureKind.NETWORK_ERROR
                if self._backoff.exhausted(series.failures):
                    self._log.warning(
                        "backoff_exhausted",
                        schedule=series.name,
                        failures=series.failures,
                    )
                    series.failures = 0
                    series.transition(SeriesState.IDLE)
                    series.advance_period(now)
                else:
                    delay = self._backoff.get_delay_seconds(series.failures)
                    series.transition(SeriesState.BACKOFF)
                    series.next_fire_at = now + timedelta(seconds=delay)
                    self._log.info(
                        "series_backoff",
                        schedule=series.name,
                        failures=series.failures,
                        failure_kind=series.last_failure_kind.value,
                        delay_seconds=round(delay, 2),
                    )

            self._persist(series, now)
            self._wakeup.notify_all()

    # ===== Timer thread =====

    def start(self) -> None:
        """Start the timer thread. Idempotent."""
        with self._lock:
            if self._closed:
                msg = "Scheduler is shut down"
                raise RuntimeError(msg)
            if self.is_running:
                return
            self._stopping = False
            self._thread = threading.Thread(
                target=self._loop, name="devbytes-scheduler", daemon=True
            )
            self._thread.start()

    def shutdown(self, wait: bool = True, timeout: float | None = None) -> None:
        """Cancel every series and stop the timer thread.

        Persisted schedule state is kept so a KEEP registration after a
        restart resumes it. In-flight refreshes are not interrupted; their
        results are discarded.

        Args:
            wait: Join the timer thread.
            timeout: Join timeout in seconds.
        """
        with self._lock:
            self._closed = True
            self._stopping = True
            for series in self._series.values():
                self._cancel_locked(series, reason="shutdown")
            self._series.clear()
            self._wakeup.notify_all()
            thread = self._thread

        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._log.info("scheduler_shutdown")

    def _loop(self) -> None:
        self._log.info("scheduler_started")
        while True:
            with self._wakeup:
                if self._stopping:
                    break
                wait_seconds = self._seconds_until_due()
                if wait_seconds is None or wait_seconds > 0:
                    self._wakeup.wait(
                        timeout=min(wait_seconds or MAX_WAIT_SECONDS, MAX_WAIT_SECONDS)
                    )
                    continue

            try:
                self.run_pending()
            except Exception:  # noqa: BLE001
                self._log.exception("scheduler_tick_failed")
                with self._wakeup:
                    self._wakeup.wait(timeout=1.0)
        self._log.info("scheduler_stopped")

    def _seconds_until_due(self) -> float | None:
        waiting = [
            series.next_fire_at
            for series in self._series.values()
            if series.state not in (SeriesState.RUNNING, SeriesState.CANCELLED)
        ]
        if not waiting:
            return None
        return (min(waiting) - self._clock()).total_seconds()

    # ===== Persistence =====

    def _persist(self, series: ScheduledSeries, now: datetime) -> None:
        if self._store is None:
            return
        try:
            self._store.save_schedule_record(series.to_record(now))
        except CacheStoreError as e:
            self._log.warning("schedule_persist_failed", schedule=series.name, error=str(e))

    def _load_record(self, name: str) -> ScheduleRecord | None:
        if self._store is None:
            return None
        try:
            return self._store.get_schedule_record(name)
        except CacheStoreError as e:
            self._log.warning("schedule_load_failed", schedule=name, error=str(e))
            return None
