"""Unit tests for cache store models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from devbytes.store.models import CacheSnapshot, Item
from tests.helpers.fakes import make_item


class TestItem:
    """Tests for Item."""

    @pytest.mark.unit
    def test_item_is_frozen(self) -> None:
        """Test that items cannot be modified in place."""
        item = make_item("a")
        with pytest.raises(ValidationError):
            item.title = "changed"  # type: ignore[misc]

    @pytest.mark.unit
    def test_item_requires_id_and_url(self) -> None:
        """Test that empty id or url is rejected."""
        with pytest.raises(ValidationError):
            Item(id="", title="t", url="https://example.com")
        with pytest.raises(ValidationError):
            Item(id="x", title="t", url="")

    @pytest.mark.unit
    def test_item_rejects_unknown_fields(self) -> None:
        """Test that extra fields are forbidden."""
        with pytest.raises(ValidationError):
            Item(id="x", title="t", url="https://example.com", updated="2019")  # type: ignore[call-arg]


class TestCacheSnapshot:
    """Tests for CacheSnapshot."""

    @pytest.mark.unit
    def test_empty_snapshot_defaults(self) -> None:
        """Test the never-written snapshot."""
        snapshot = CacheSnapshot()
        assert len(snapshot) == 0
        assert snapshot.version == 0
        assert snapshot.committed_at is None
        assert snapshot.ids == []

    @pytest.mark.unit
    def test_from_items_preserves_order(self) -> None:
        """Test that insertion order is kept."""
        snapshot = CacheSnapshot.from_items(
            [make_item("c"), make_item("a"), make_item("b")], version=1
        )
        assert snapshot.ids == ["c", "a", "b"]
        assert snapshot.version == 1
        assert snapshot.committed_at is not None

    @pytest.mark.unit
    def test_duplicate_ids_last_occurrence_wins(self) -> None:
        """Test that a repeated id keeps the last item at the last position."""
        snapshot = CacheSnapshot.from_items(
            [make_item("a", "first"), make_item("b"), make_item("a", "second")],
            version=1,
        )
        assert snapshot.ids == ["b", "a"]
        assert snapshot.items[1].title == "second"

    @pytest.mark.unit
    def test_same_content_ignores_version_and_time(self) -> None:
        """Test that content equality compares items only."""
        items = [make_item("a"), make_item("b")]
        first = CacheSnapshot.from_items(items, version=1)
        second = CacheSnapshot.from_items(
            items, version=2, committed_at=datetime(2020, 1, 1, tzinfo=UTC)
        )
        assert first.same_content(second)
        assert first != second

    @pytest.mark.unit
    def test_same_content_is_order_sensitive(self) -> None:
        """Test that reordered items are different content."""
        first = CacheSnapshot.from_items([make_item("a"), make_item("b")], version=1)
        second = CacheSnapshot.from_items([make_item("b"), make_item("a")], version=2)
        assert not first.same_content(second)
