"""Remote playlist source: contract, models and the HTTP implementation."""

from devbytes.fetch.client import HttpPlaylistSource
from devbytes.fetch.config import FetchConfig
from devbytes.fetch.models import (
    FetchErrorClass,
    RemotePlaylist,
    RemoteSourceError,
    RemoteTimeoutError,
    RemoteVideo,
)
from devbytes.fetch.source import RemoteSource


__all__ = [
    "FetchConfig",
    "FetchErrorClass",
    "HttpPlaylistSource",
    "RemotePlaylist",
    "RemoteSource",
    "RemoteSourceError",
    "RemoteTimeoutError",
    "RemoteVideo",
]
