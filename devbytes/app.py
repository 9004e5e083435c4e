"""Application wiring: store, remote source, pipeline, scheduler and view."""

import logging
from datetime import timedelta
from types import TracebackType

import structlog

from devbytes.config.schemas import AppConfig
from devbytes.fetch.client import HttpPlaylistSource
from devbytes.fetch.source import RemoteSource
from devbytes.observability.logging import configure_logging
from devbytes.refresh.pipeline import RefreshPipeline
from devbytes.scheduler.constraints import AlwaysSatisfied, ConstraintChecker
from devbytes.scheduler.scheduler import RefreshScheduler
from devbytes.scheduler.series import ScheduledSeries
from devbytes.store.registry import close_store, get_store
from devbytes.store.store import CacheStore
from devbytes.view.playlist import PlaylistView


logger = structlog.get_logger()


class DevBytesApplication:
    """Owns every long-lived component of one process.

    ``open`` is enough for one-shot work (refresh, show, status); ``start``
    additionally registers the recurring refresh and starts the scheduler
    thread. ``shutdown`` tears down in reverse order and is safe to call
    more than once.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        source: RemoteSource | None = None,
        checker: ConstraintChecker | None = None,
        configure_logs: bool = True,
    ) -> None:
        """Initialize the application.

        Args:
            config: Application configuration (defaults when omitted).
            source: Remote source override; HTTP source from config if None.
            checker: Host constraint signal. Hosts without device
                conditions get ``AlwaysSatisfied``.
            configure_logs: Configure structlog from ``config.logging``.
        """
        self._config = config or AppConfig()
        self._source_override = source
        self._checker = checker or AlwaysSatisfied()
        self._configure_logs = configure_logs

        self._store: CacheStore | None = None
        self._pipeline: RefreshPipeline | None = None
        self._scheduler: RefreshScheduler | None = None
        self._view: PlaylistView | None = None
        self._log = logger.bind(component="app")

    @property
    def config(self) -> AppConfig:
        """Active configuration."""
        return self._config

    @property
    def store(self) -> CacheStore:
        """The process-wide cache store."""
        if self._store is None:
            msg = "Application not opened. Call open() first."
            raise RuntimeError(msg)
        return self._store

    @property
    def pipeline(self) -> RefreshPipeline:
        """The refresh pipeline."""
        if self._pipeline is None:
            msg = "Application not opened. Call open() first."
            raise RuntimeError(msg)
        return self._pipeline

    @property
    def scheduler(self) -> RefreshScheduler:
        """The refresh scheduler."""
        if self._scheduler is None:
            msg = "Scheduler not started. Call start() first."
            raise RuntimeError(msg)
        return self._scheduler

    @property
    def view(self) -> PlaylistView:
        """Observable playlist."""
        if self._view is None:
            msg = "Application not opened. Call open() first."
            raise RuntimeError(msg)
        return self._view

    def open(self) -> None:
        """Open the store and build the pipeline. Idempotent."""
        if self._store is not None:
            return

        if self._configure_logs:
            level = logging.getLevelName(self._config.logging.level)
            configure_logging(level=level, json_format=self._config.logging.json_format)

        self._store = get_store(self._config.store.path)
        source = self._source_override or HttpPlaylistSource(self._config.fetch)
        self._pipeline = RefreshPipeline(
            source,
            self._store,
            fetch_timeout_seconds=self._config.refresh.fetch_timeout_seconds,
            record_history=self._config.refresh.record_history,
        )
        self._view = PlaylistView(self._store)
        self._log.info(
            "application_opened",
            store_path=self._config.store.path,
            cached_items=len(self._store.read_all()),
        )

    def start(self) -> None:
        """Open, register the recurring refresh and start the scheduler."""
        self.open()
        if self._scheduler is not None:
            return

        schedule = self._config.schedule
        self._scheduler = RefreshScheduler(
            pipeline=self.pipeline,
            checker=self._checker,
            store=self.store,
            backoff=schedule.backoff,
            constraint_recheck_seconds=schedule.constraint_recheck_minutes * 60,
        )
        self.setup_recurring_work()
        self._scheduler.start()
        self._log.info("application_started")

    def setup_recurring_work(self) -> ScheduledSeries | None:
        """Register the daily refresh series from the schedule config.

        Returns:
            The active series, or None when scheduling is disabled.
        """
        schedule = self._config.schedule
        if not schedule.enabled:
            self._log.info("recurring_work_disabled")
            return None

        return self.scheduler.schedule(
            schedule.name,
            timedelta(hours=schedule.period_hours),
            constraints=schedule.constraints,
            on_conflict=schedule.on_conflict,
            initial_delay=schedule.initial_delay_seconds,
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the scheduler, then the pipeline, then close the store.

        Args:
            wait: Wait for a running refresh attempt to finish. Without
                waiting, the attempt completes in the background and fails
                its write against the closed store.
        """
        if self._scheduler is not None:
            self._scheduler.shutdown()
            self._scheduler = None
        if self._pipeline is not None:
            self._pipeline.shutdown(wait=wait)
            self._pipeline = None
        if self._store is not None:
            close_store()
            self._store = None
            self._view = None
            self._log.info("application_shutdown")

    def __enter__(self) -> "DevBytesApplication":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown()

