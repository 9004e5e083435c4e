"""Read-only playlist projection over the cache store."""

from collections.abc import Iterator
from types import TracebackType

from devbytes.store.models import CacheSnapshot
from devbytes.store.store import CacheStore
from devbytes.store.subscription import SnapshotSubscription
from devbytes.view.models import Video


def as_videos(snapshot: CacheSnapshot) -> list[Video]:
    """Map a snapshot onto domain videos, keeping order."""
    return [Video.from_item(item) for item in snapshot.items]


class PlaylistStream:
    """Iterator of video lists backed by one store subscription."""

    def __init__(self, subscription: SnapshotSubscription) -> None:
        self._subscription = subscription

    def get(self, timeout: float | None = None) -> list[Video] | None:
        """Wait for the next playlist; None on timeout or after close."""
        snapshot = self._subscription.get(timeout=timeout)
        if snapshot is None:
            return None
        return as_videos(snapshot)

    def close(self) -> None:
        """Detach from the store."""
        self._subscription.close()

    def __iter__(self) -> Iterator[list[Video]]:
        for snapshot in self._subscription:
            yield as_videos(snapshot)

    def __enter__(self) -> "PlaylistStream":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class PlaylistView:
    """Observable playlist for UIs and other subscribers.

    Never raises for missing data: an empty or never-written cache is an
    empty list.
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    def current(self) -> list[Video]:
        """The playlist as currently cached."""
        return as_videos(self._store.read_all())

    def subscribe(self, include_current: bool = True) -> PlaylistStream:
        """Stream the playlist, starting with the current one by default."""
        return PlaylistStream(self._store.subscribe(include_current=include_current))
