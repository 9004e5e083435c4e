"""Metrics collection for the cache store."""

from dataclasses import dataclass, field
from threading import Lock
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Thread-safe counters for cache store operations.

    Attributes:
        replace_total: Committed replace_all calls.
        replace_failed_total: replace_all calls rolled back.
        items_written_total: Items written across all commits.
        tx_duration_ms: Cumulative transaction duration in milliseconds.
        tx_count: Number of committed transactions.
        subscribers_notified_total: Snapshot deliveries to subscribers.
    """

    replace_total: int = 0
    replace_failed_total: int = 0
    items_written_total: int = 0
    tx_duration_ms: float = 0.0
    tx_count: int = 0
    subscribers_notified_total: int = 0

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    _instance: ClassVar["StoreMetrics | None"] = None
    _instance_lock: ClassVar[Lock] = Lock()

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        with cls._instance_lock:
            cls._instance = None

    def record_replace(self, item_count: int) -> None:
        """Record a committed replacement.

        Args:
            item_count: Number of items in the new snapshot.
        """
        with self._lock:
            self.replace_total += 1
            self.items_written_total += item_count

    def record_replace_failed(self) -> None:
        """Record a rolled back replacement."""
        with self._lock:
            self.replace_failed_total += 1

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record transaction duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        with self._lock:
            self.tx_duration_ms += duration_ms
            self.tx_count += 1

    def record_notified(self, subscriber_count: int) -> None:
        """Record snapshot deliveries."""
        with self._lock:
            self.subscribers_notified_total += subscriber_count

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        with self._lock:
            return {
                "replace_total": self.replace_total,
                "replace_failed_total": self.replace_failed_total,
                "items_written_total": self.items_written_total,
                "tx_duration_ms": self.tx_duration_ms,
                "tx_count": self.tx_count,
                "subscribers_notified_total": self.subscribers_notified_total,
            }

    @property
    def avg_tx_duration_ms(self) -> float:
        """Average transaction duration in milliseconds."""
        if self.tx_count == 0:
            return 0.0
        return self.tx_duration_ms / self.tx_count


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count."""
        self.affected_rows += rows
