"""Metrics collection for the refresh pipeline."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock


_metrics_instance: "RefreshMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class RefreshMetrics:
    """Thread-safe counters for refresh attempts.

    ``coalesced_total`` counts ``refresh_now`` calls that attached to an
    attempt already in flight instead of starting a new one.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    attempts_total: int = 0
    succeeded_total: int = 0
    failed_total: int = 0
    coalesced_total: int = 0
    failures_by_kind: Counter[str] = field(default_factory=Counter)
    last_duration_ms: float = 0.0

    @classmethod
    def get_instance(cls) -> "RefreshMetrics":
        """Get the singleton instance (thread-safe)."""
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_started(self) -> None:
        """Record a new attempt."""
        with self._lock:
            self.attempts_total += 1

    def record_coalesced(self) -> None:
        """Record a call that joined the in-flight attempt."""
        with self._lock:
            self.coalesced_total += 1

    def record_finished(
        self, success: bool, failure_kind: str | None, duration_ms: float
    ) -> None:
        """Record the outcome of an attempt.

        Args:
            success: Whether the cache was replaced.
            failure_kind: Failure kind value on failure.
            duration_ms: Attempt duration in milliseconds.
        """
        with self._lock:
            self.last_duration_ms = duration_ms
            if success:
                self.succeeded_total += 1
            else:
                self.failed_total += 1
                self.failures_by_kind[failure_kind or "UNKNOWN"] += 1

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary."""
        with self._lock:
            return {
                "attempts_total": self.attempts_total,
                "succeeded_total": self.succeeded_total,
                "failed_total": self.failed_total,
                "coalesced_total": self.coalesced_total,
                "failures_by_kind": dict(self.failures_by_kind),
                "last_duration_ms": self.last_duration_ms,
            }
