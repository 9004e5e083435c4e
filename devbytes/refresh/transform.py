"""Pure mapping from remote playlist entries to cache items."""

from collections.abc import Iterable

from devbytes.fetch.models import RemoteVideo
from devbytes.store.models import Item


def remote_to_item(video: RemoteVideo) -> Item:
    """Map one remote video onto a cache item.

    The landing URL doubles as identifier and media URL when the endpoint
    does not serve dedicated ones.
    """
    return Item(
        id=video.id or video.url,
        title=video.title,
        description=video.description,
        url=video.url,
        thumbnail_url=video.thumbnail,
        media_url=video.media_url or video.url,
    )


def to_items(videos: Iterable[RemoteVideo]) -> list[Item]:
    """Map a remote playlist onto cache items, keeping order."""
    return [remote_to_item(video) for video in videos]
