"""Data models for refresh attempts."""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from devbytes.store.models import RefreshRecord


class FailureKind(str, Enum):
    """Why a refresh attempt (or a schedule registration) failed.

    - NETWORK_ERROR: Remote source failed or returned an unusable playlist
    - TIMEOUT: Remote source did not answer within the configured bound
    - STORAGE_UNAVAILABLE: Cache store rejected the replacement
    - SCHEDULE_CONFLICT: Incompatible re-registration of a named schedule
    """

    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    SCHEDULE_CONFLICT = "SCHEDULE_CONFLICT"


class RefreshResult(BaseModel):
    """Outcome of one refresh attempt.

    The same instance is delivered to every caller attached to the attempt.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    attempt_id: Annotated[str, Field(min_length=1)]
    success: bool
    failure_kind: FailureKind | None = None
    error_class: str | None = Field(
        default=None, description="Fine-grained cause, e.g. a fetch error class"
    )
    message: str | None = None
    item_count: int = Field(default=0, ge=0)
    snapshot_version: int | None = Field(
        default=None, description="Version of the committed snapshot on success"
    )
    started_at: datetime
    finished_at: datetime

    @property
    def duration_ms(self) -> float:
        """Attempt duration in milliseconds."""
        return (self.finished_at - self.started_at).total_seconds() * 1000

    def to_record(self) -> RefreshRecord:
        """Convert to a refresh history record."""
        return RefreshRecord(
            attempt_id=self.attempt_id,
            started_at=self.started_at,
            finished_at=self.finished_at,
            success=self.success,
            failure_kind=self.failure_kind.value if self.failure_kind else None,
            error_message=self.message,
            item_count=self.item_count,
        )
