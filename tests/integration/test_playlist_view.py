"""Integration tests for the observable playlist view."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from devbytes.store.store import CacheStore
from devbytes.view.playlist import PlaylistView
from tests.helpers.fakes import make_item


@pytest.fixture
def store() -> Generator[CacheStore]:
    """Create a connected cache store."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = CacheStore(Path(tmpdir) / "cache.sqlite")
        store.connect()
        yield store
        store.close()


class TestPlaylistView:
    """Tests for PlaylistView."""

    @pytest.mark.integration
    def test_current_empty_before_first_refresh(self, store: CacheStore) -> None:
        """Test that no data is an empty playlist, not an error."""
        assert PlaylistView(store).current() == []

    @pytest.mark.integration
    def test_subscribe_starts_with_current_playlist(self, store: CacheStore) -> None:
        """Test the default include-current stream."""
        store.replace_all([make_item("A")])
        with PlaylistView(store).subscribe() as stream:
            first = stream.get(timeout=1.0)
            assert first is not None
            assert [video.id for video in first] == ["A"]

            store.replace_all([make_item("B"), make_item("C")])
            second = stream.get(timeout=1.0)
            assert second is not None
            assert [video.id for video in second] == ["B", "C"]

    @pytest.mark.integration
    def test_streams_are_independent(self, store: CacheStore) -> None:
        """Test that closing one stream does not affect another."""
        view = PlaylistView(store)
        first = view.subscribe(include_current=False)
        second = view.subscribe(include_current=False)
        first.close()

        store.replace_all([make_item("A")])

        assert first.get(timeout=0.01) is None
        received = second.get(timeout=1.0)
        assert received is not None
        assert received[0].short_description == "About A"
        second.close()
        assert store.subscriber_count == 0
