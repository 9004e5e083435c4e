"""Single-flight refresh pipeline: fetch, transform, replace."""

import threading
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from devbytes.fetch.models import (
    FetchErrorClass,
    RemoteSourceError,
    RemoteTimeoutError,
    RemoteVideo,
)
from devbytes.fetch.source import RemoteSource
from devbytes.refresh.metrics import RefreshMetrics
from devbytes.refresh.models import FailureKind, RefreshResult
from devbytes.refresh.state_machine import RefreshState, RefreshStateMachine
from devbytes.refresh.transform import to_items
from devbytes.store.errors import CacheStoreError
from devbytes.store.store import CacheStore


logger = structlog.get_logger()

DEFAULT_FETCH_TIMEOUT_SECONDS = 60.0


class _AttemptFailed(Exception):
    """Internal signal carrying the failure of one pipeline step."""

    def __init__(
        self,
        failure_kind: FailureKind,
        message: str,
        error_class: str | None = None,
    ) -> None:
        self.failure_kind = failure_kind
        self.error_class = error_class
        super().__init__(message)


class RefreshPipeline:
    """Refreshes the cache from the remote source, one attempt at a time.

    ``refresh_now`` never blocks: the first caller starts an attempt on the
    background executor and every caller that arrives before it finishes
    gets the same future. Attempts never raise; the outcome is a
    ``RefreshResult`` carrying a ``FailureKind`` on failure.

    Each remote call runs on its own daemon thread and is bounded by
    ``fetch_timeout_seconds`` from the moment the call starts. A call that
    overruns is abandoned and its result discarded when it eventually
    returns; it never delays the calls of later attempts.
    """

    def __init__(
        self,
        source: RemoteSource,
        store: CacheStore,
        fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        executor: Executor | None = None,
        record_history: bool = True,
    ) -> None:
        """Initialize the pipeline.

        Args:
            source: Remote source supplying the playlist.
            store: Cache store receiving the replacement.
            fetch_timeout_seconds: Bound on each remote call.
            executor: Background executor running attempts. A private
                single-thread executor is created when omitted.
            record_history: Persist every attempt in the refresh history.
        """
        if fetch_timeout_seconds <= 0:
            msg = f"fetch_timeout_seconds must be positive, got {fetch_timeout_seconds}"
            raise ValueError(msg)

        self._source = source
        self._store = store
        self._fetch_timeout_seconds = fetch_timeout_seconds
        self._record_history = record_history
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="devbytes-refresh"
        )
        self._lock = threading.Lock()
        self._inflight: Future[RefreshResult] | None = None
        self._closed = False
        self._metrics = RefreshMetrics.get_instance()
        self._log = logger.bind(component="refresh")

    @property
    def in_flight(self) -> bool:
        """Check if an attempt is currently running."""
        return self._inflight is not None

    def refresh_now(self) -> "Future[RefreshResult]":
        """Start a refresh, or join the one already running.

        Returns:
            Future resolving to the attempt's result. It never resolves
            with an exception.

        Raises:
            RuntimeError: If the pipeline was shut down.
        """
        with self._lock:
            if self._closed:
                msg = "Refresh pipeline is shut down"
                raise RuntimeError(msg)

            if self._inflight is not None:
                self._metrics.record_coalesced()
                self._log.debug("refresh_joined_in_flight")
                return self._inflight

            attempt_id = uuid.uuid4().hex[:12]
            future: Future[RefreshResult] = Future()
            # Running futures cannot be cancelled by attached callers
            future.set_running_or_notify_cancel()
            self._executor.submit(self._run, future, attempt_id)
            self._inflight = future

        return future

    def refresh_and_wait(self, timeout: float | None = None) -> RefreshResult:
        """Refresh (or join the running refresh) and wait for the result.

        Args:
            timeout: Seconds to wait, or None to wait forever.

        Raises:
            TimeoutError: If the result is not available in time.
        """
        return self.refresh_now().result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting refreshes and release executors.

        An attempt already running completes on its own; abandoned remote
        calls are daemon threads and are not waited for.

        Args:
            wait: Wait for the running attempt when the executor is owned.
        """
        with self._lock:
            self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
        self._log.info("refresh_pipeline_shutdown")

    def _run(self, future: "Future[RefreshResult]", attempt_id: str) -> None:
        try:
            result = self._attempt(attempt_id)
        except Exception as e:  # noqa: BLE001
            self._log.exception("refresh_attempt_crashed", attempt_id=attempt_id)
            now = datetime.now(UTC)
            result = RefreshResult(
                attempt_id=attempt_id,
                success=False,
                failure_kind=FailureKind.NETWORK_ERROR,
                error_class=FetchErrorClass.UNKNOWN.value,
                message=f"Unexpected error: {e}",
                started_at=now,
                finished_at=now,
            )

        with self._lock:
            self._inflight = None
        future.set_result(result)

    def _attempt(self, attempt_id: str) -> RefreshResult:
        machine = RefreshStateMachine(attempt_id)
        log = self._log.bind(attempt_id=attempt_id)
        started_at = datetime.now(UTC)

        machine.transition(RefreshState.RUNNING)
        self._metrics.record_started()
        log.info("refresh_started")

        try:
            videos = self._fetch(log)
            try:
                items = to_items(videos)
            except ValidationError as e:
                raise _AttemptFailed(
                    FailureKind.NETWORK_ERROR,
                    f"Playlist entries could not be mapped: {e}",
                    FetchErrorClass.INVALID_PAYLOAD.value,
                ) from e
            try:
                snapshot = self._store.replace_all(items)
            except CacheStoreError as e:
                raise _AttemptFailed(FailureKind.STORAGE_UNAVAILABLE, str(e)) from e
        except _AttemptFailed as failure:
            machine.transition(RefreshState.FAILED)
            result = RefreshResult(
                attempt_id=attempt_id,
                success=False,
                failure_kind=failure.failure_kind,
                error_class=failure.error_class,
                message=str(failure),
                started_at=started_at,
                finished_at=datetime.now(UTC),
            )
            log.warning(
                "refresh_failed",
                failure_kind=failure.failure_kind.value,
                error_class=failure.error_class,
                error=str(failure),
                duration_ms=round(result.duration_ms, 2),
            )
        else:
            machine.transition(RefreshState.SUCCEEDED)
            result = RefreshResult(
                attempt_id=attempt_id,
                success=True,
                item_count=len(snapshot),
                snapshot_version=snapshot.version,
                started_at=started_at,
                finished_at=datetime.now(UTC),
            )
            log.info(
                "refresh_succeeded",
                items=result.item_count,
                snapshot_version=snapshot.version,
                duration_ms=round(result.duration_ms, 2),
            )

        self._metrics.record_finished(
            result.success,
            result.failure_kind.value if result.failure_kind else None,
            result.duration_ms,
        )
        self._record(result, log)
        return result

    def _fetch(self, log: structlog.stdlib.BoundLogger) -> list[RemoteVideo]:
        call: Future[list[RemoteVideo]] = Future()
        call.set_running_or_notify_cancel()
        worker = threading.Thread(
            target=self._call_source,
            args=(call,),
            name="devbytes-fetch",
            daemon=True,
        )
        worker.start()
        try:
            return call.result(timeout=self._fetch_timeout_seconds)
        except TimeoutError as e:
            log.warning(
                "remote_call_abandoned",
                timeout_seconds=self._fetch_timeout_seconds,
            )
            raise _AttemptFailed(
                FailureKind.TIMEOUT,
                f"Remote source did not answer within {self._fetch_timeout_seconds}s",
                FetchErrorClass.NETWORK_TIMEOUT.value,
            ) from e
        except RemoteTimeoutError as e:
            raise _AttemptFailed(
                FailureKind.TIMEOUT, str(e), FetchErrorClass.NETWORK_TIMEOUT.value
            ) from e
        except RemoteSourceError as e:
            raise _AttemptFailed(
                FailureKind.NETWORK_ERROR, str(e), e.error_class.value
            ) from e
        except Exception as e:  # noqa: BLE001
            raise _AttemptFailed(
                FailureKind.NETWORK_ERROR,
                f"Remote source error: {e}",
                FetchErrorClass.UNKNOWN.value,
            ) from e

    def _call_source(self, call: "Future[list[RemoteVideo]]") -> None:
        try:
            videos = self._source.fetch_playlist()
        except Exception as e:  # noqa: BLE001
            call.set_exception(e)
        else:
            call.set_result(videos)

    def _record(self, result: RefreshResult, log: structlog.stdlib.BoundLogger) -> None:
        if not self._record_history:
            return
        try:
            self._store.record_refresh(result.to_record())
        except CacheStoreError as e:
            log.warning("refresh_history_not_recorded", error=str(e))
