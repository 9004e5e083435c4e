"""Per-subscriber snapshot streams."""

import queue
from collections.abc import Callable, Iterator
from types import TracebackType

from devbytes.store.models import CacheSnapshot


_CLOSED = object()


class SnapshotSubscription:
    """Lazy, unbounded stream of committed snapshots for one subscriber.

    Snapshots are queued by the store while it still holds its write lock,
    so every subscriber sees commits in commit order and none are dropped.
    Iteration blocks until the next commit and ends once ``close`` is called.
    """

    def __init__(
        self,
        subscription_id: int,
        detach: Callable[[int], None],
    ) -> None:
        """Initialize the subscription.

        Args:
            subscription_id: Key of this subscription in the store registry.
            detach: Callback removing this subscription from the store.
        """
        self._id = subscription_id
        self._detach = detach
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._closed = False

    @property
    def subscription_id(self) -> int:
        """Get the registry key."""
        return self._id

    @property
    def closed(self) -> bool:
        """Check if the subscription was closed."""
        return self._closed

    def publish(self, snapshot: CacheSnapshot) -> None:
        """Queue a snapshot for delivery. Called by the store."""
        if not self._closed:
            self._queue.put(snapshot)

    def get(self, timeout: float | None = None) -> CacheSnapshot | None:
        """Wait for the next snapshot.

        Args:
            timeout: Seconds to wait, or None to wait forever.

        Returns:
            The next snapshot, or None on timeout or after close.
        """
        if self._closed and self._queue.empty():
            return None
        try:
            value = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if value is _CLOSED:
            return None
        return value  # type: ignore[return-value]

    def drain(self) -> list[CacheSnapshot]:
        """Return every snapshot already queued without blocking."""
        drained: list[CacheSnapshot] = []
        while True:
            try:
                value = self._queue.get_nowait()
            except queue.Empty:
                return drained
            if value is _CLOSED:
                return drained
            drained.append(value)  # type: ignore[arg-type]

    def close(self) -> None:
        """Detach from the store. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._detach(self._id)
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[CacheSnapshot]:
        while True:
            snapshot = self.get()
            if snapshot is None:
                return
            yield snapshot

    def __enter__(self) -> "SnapshotSubscription":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
