"""Observable playlist view for consumers of the cache."""

from devbytes.view.models import Video, smart_truncate
from devbytes.view.playlist import PlaylistStream, PlaylistView, as_videos


__all__ = [
    "PlaylistStream",
    "PlaylistView",
    "Video",
    "as_videos",
    "smart_truncate",
]
