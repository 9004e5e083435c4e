"""Data models for the cache store."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class Item(BaseModel):
    """A cached playlist entry.

    Mirrors one video of the remote playlist. Items are never updated in
    place; they are only written as part of a full replacement batch.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1, description="Unique identifier (primary key)")]
    title: str = Field(description="Display title")
    description: str = Field(default="", description="Long description")
    url: Annotated[str, Field(min_length=1, description="Landing page URL")]
    thumbnail_url: str = Field(default="", description="Thumbnail image URL")
    media_url: str = Field(default="", description="Playable media URL")


class CacheSnapshot(BaseModel):
    """Immutable view of the whole cache at one commit.

    ``version`` increases by one per committed replacement; version 0 is the
    empty snapshot of a store that was never written.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    items: tuple[Item, ...] = Field(default=(), description="Items in insertion order")
    version: int = Field(default=0, ge=0, description="Commit counter")
    committed_at: datetime | None = Field(
        default=None, description="When the snapshot was committed"
    )

    @classmethod
    def from_items(
        cls,
        items: Iterable[Item],
        version: int,
        committed_at: datetime | None = None,
    ) -> "CacheSnapshot":
        """Build a snapshot from a batch, collapsing duplicate ids.

        A later item with an already seen id replaces the earlier one and
        takes the later position, matching ``INSERT OR REPLACE`` row order.

        Args:
            items: Items in the order they should be inserted.
            version: Commit counter for the new snapshot.
            committed_at: Commit timestamp (defaults to now).

        Returns:
            The new snapshot.
        """
        by_id: dict[str, Item] = {}
        for item in items:
            by_id.pop(item.id, None)
            by_id[item.id] = item
        return cls(
            items=tuple(by_id.values()),
            version=version,
            committed_at=committed_at or datetime.now(UTC),
        )

    def __len__(self) -> int:
        return len(self.items)

    @property
    def ids(self) -> list[str]:
        """Item identifiers in snapshot order."""
        return [item.id for item in self.items]

    def same_content(self, other: "CacheSnapshot") -> bool:
        """Check whether two snapshots hold identical items in the same order."""
        return self.items == other.items


class RefreshRecord(BaseModel):
    """One recorded refresh attempt.

    ``failure_kind`` is stored as the plain failure kind value so the store
    does not depend on the refresh layer.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    attempt_id: Annotated[str, Field(min_length=1)]
    started_at: datetime
    finished_at: datetime
    success: bool
    failure_kind: str | None = None
    error_message: str | None = None
    item_count: int = Field(default=0, ge=0)


class ScheduleRecord(BaseModel):
    """Persisted state of a named refresh schedule."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Annotated[str, Field(min_length=1)]
    period_seconds: float = Field(gt=0)
    constraints_json: str = Field(default="{}")
    next_fire_at: datetime
    period_anchor_at: datetime | None = None
    attempt: int = Field(default=0, ge=0)
    last_success_at: datetime | None = None
    last_failure_kind: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
