"""HTTP playlist source built on httpx."""

import json
import time
from io import BytesIO

import httpx
import structlog
from pydantic import ValidationError

from devbytes.fetch.config import FetchConfig
from devbytes.fetch.constants import (
    DEFAULT_CHUNK_SIZE,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
)
from devbytes.fetch.models import (
    FetchErrorClass,
    RemotePlaylist,
    RemoteSourceError,
    RemoteTimeoutError,
    RemoteVideo,
)
from devbytes.fetch.redact import redact_headers, redact_url_credentials


logger = structlog.get_logger()


class HttpPlaylistSource:
    """Fetches the playlist document with a single bounded GET.

    No retries are made here: a failed fetch is reported to the refresh
    pipeline, and the scheduler decides when to try again.
    """

    def __init__(
        self,
        config: FetchConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            config: Fetch configuration.
            transport: Optional httpx transport (tests use ``MockTransport``).
        """
        self._config = config
        self._transport = transport
        self._log = logger.bind(
            component="fetch",
            url=redact_url_credentials(config.playlist_url),
        )

    def fetch_playlist(self) -> list[RemoteVideo]:
        """Fetch and parse the playlist.

        Returns:
            Videos in the order served.

        Raises:
            RemoteTimeoutError: If the request timed out.
            RemoteSourceError: For any other transport, status or payload error.
        """
        start_time_ns = time.perf_counter_ns()
        headers = {
            "User-Agent": self._config.user_agent,
            "Accept": "application/json",
            **self._config.headers,
        }
        self._log.debug("fetch_started", headers=redact_headers(headers))

        try:
            body, status_code = self._get(headers)
        except httpx.TimeoutException as e:
            self._log.warning("fetch_timeout", error=str(e))
            msg = f"Request timed out: {e}"
            raise RemoteTimeoutError(msg) from e
        except httpx.ConnectError as e:
            self._log.warning("fetch_connection_failed", error=str(e))
            raise RemoteSourceError(
                FetchErrorClass.CONNECTION_ERROR, f"Connection failed: {e}"
            ) from e
        except httpx.HTTPError as e:
            self._log.warning("fetch_failed", error=str(e))
            raise RemoteSourceError(FetchErrorClass.UNKNOWN, f"HTTP error: {e}") from e

        videos = self._parse(body)

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._log.info(
            "fetch_complete",
            status_code=status_code,
            bytes=len(body),
            videos=len(videos),
            duration_ms=round(duration_ms, 2),
        )
        return videos

    def _get(self, headers: dict[str, str]) -> tuple[bytes, int]:
        with httpx.Client(
            timeout=self._config.timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        ) as client, client.stream(
            "GET", self._config.playlist_url, headers=headers
        ) as response:
            error = self._classify_status(response.status_code)
            if error is not None:
                raise error

            content_length = response.headers.get("content-length")
            if content_length and int(content_length) > self._config.max_response_size_bytes:
                raise RemoteSourceError(
                    FetchErrorClass.RESPONSE_SIZE_EXCEEDED,
                    f"Response size {content_length} exceeds limit "
                    f"{self._config.max_response_size_bytes}",
                    status_code=response.status_code,
                )

            return self._read_body_with_limit(response), response.status_code

    def _read_body_with_limit(self, response: httpx.Response) -> bytes:
        buffer = BytesIO()
        total_read = 0
        max_size = self._config.max_response_size_bytes

        for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
            total_read += len(chunk)
            if total_read > max_size:
                raise RemoteSourceError(
                    FetchErrorClass.RESPONSE_SIZE_EXCEEDED,
                    f"Response size exceeded limit of {max_size} bytes "
                    f"(read {total_read} bytes)",
                    status_code=response.status_code,
                )
            buffer.write(chunk)

        return buffer.getvalue()

    def _classify_status(self, status_code: int) -> RemoteSourceError | None:
        if HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX:
            return None

        if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
            return RemoteSourceError(
                FetchErrorClass.RATE_LIMITED,
                "Rate limited (429 Too Many Requests)",
                status_code=status_code,
            )

        if HTTP_STATUS_BAD_REQUEST <= status_code < HTTP_STATUS_SERVER_ERROR_MIN:
            return RemoteSourceError(
                FetchErrorClass.HTTP_4XX,
                f"Client error ({status_code})",
                status_code=status_code,
            )

        if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
            return RemoteSourceError(
                FetchErrorClass.HTTP_5XX,
                f"Server error ({status_code})",
                status_code=status_code,
            )

        return RemoteSourceError(
            FetchErrorClass.UNKNOWN,
            f"Unexpected status ({status_code})",
            status_code=status_code,
        )

    def _parse(self, body: bytes) -> list[RemoteVideo]:
        try:
            payload = json.loads(body)
            playlist = RemotePlaylist.model_validate(payload)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            self._log.warning("invalid_playlist_payload", error=str(e))
            raise RemoteSourceError(
                FetchErrorClass.INVALID_PAYLOAD, f"Invalid playlist payload: {e}"
            ) from e
        return playlist.videos
