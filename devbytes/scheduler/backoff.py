"""Backoff policy applied after failed scheduled refreshes."""

import random
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class BackoffKind(str, Enum):
    """Growth of the delay between consecutive failed attempts."""

    EXPONENTIAL = "EXPONENTIAL"
    LINEAR = "LINEAR"


class BackoffPolicy(BaseModel):
    """Delay before retrying a failed scheduled refresh.

    Exponential: ``delay = base_delay_seconds * 2 ** (failures - 1)``.
    Linear: ``delay = base_delay_seconds * failures``.
    Both are capped at ``max_delay_seconds`` and jittered upward by at most
    ``jitter_factor``. After ``max_attempts`` consecutive failures the
    series stops retrying and waits for its next period; ``None`` retries
    until a refresh succeeds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: BackoffKind = BackoffKind.EXPONENTIAL
    base_delay_seconds: Annotated[float, Field(ge=1.0, le=3600.0)] = 30.0
    max_delay_seconds: Annotated[float, Field(ge=1.0, le=86400.0)] = 5 * 3600.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1
    max_attempts: Annotated[int, Field(ge=1, le=100)] | None = 5

    def get_delay_seconds(self, failures: int) -> float:
        """Calculate the delay after ``failures`` consecutive failures.

        Args:
            failures: Consecutive failures so far (1 after the first failure).

        Returns:
            Delay in seconds.
        """
        failures = max(failures, 1)
        if self.kind == BackoffKind.EXPONENTIAL:
            delay = self.base_delay_seconds * (2 ** (failures - 1))
        else:
            delay = self.base_delay_seconds * failures
        delay = min(delay, self.max_delay_seconds)

        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return delay + jitter

    def exhausted(self, failures: int) -> bool:
        """Check if the series should stop retrying until its next period."""
        return self.max_attempts is not None and failures >= self.max_attempts
