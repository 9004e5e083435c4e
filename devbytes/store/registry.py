"""Process-wide cache store.

The application shares one ``CacheStore`` per process. It is created on
first use under an explicit lock and torn down with ``close_store``.
"""

import threading
from pathlib import Path

from devbytes.store.store import CacheStore


_store: CacheStore | None = None
_store_lock = threading.Lock()


def get_store(db_path: Path | str) -> CacheStore:
    """Get the process-wide store, creating and connecting it once.

    Args:
        db_path: Database path used on first initialization.

    Returns:
        The shared, connected store.

    Raises:
        ValueError: If the store is already open on a different path.
    """
    global _store  # noqa: PLW0603
    with _store_lock:
        if _store is None:
            store = CacheStore(db_path)
            store.connect()
            _store = store
        elif str(_store.db_path) != str(db_path):
            msg = f"Store already initialized with {_store.db_path}, not {db_path}"
            raise ValueError(msg)
        return _store


def close_store() -> None:
    """Close and forget the process-wide store, if any."""
    global _store  # noqa: PLW0603
    with _store_lock:
        if _store is not None:
            _store.close()
            _store = None
