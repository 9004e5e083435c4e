"""Remote source contract consumed by the refresh pipeline."""

from typing import Protocol

from devbytes.fetch.models import RemoteVideo


class RemoteSource(Protocol):
    """Supplies the current authoritative playlist on demand.

    Implementations raise ``RemoteSourceError`` (or ``RemoteTimeoutError``)
    when the playlist cannot be obtained. They may be slow; the pipeline
    bounds each call with its own timeout.
    """

    def fetch_playlist(self) -> list[RemoteVideo]:
        """Fetch the full playlist."""
        ...
