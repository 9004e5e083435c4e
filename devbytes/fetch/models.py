"""Data models and errors for the remote playlist source."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FetchErrorClass(str, Enum):
    """Classification of remote source failures.

    - NETWORK_TIMEOUT: Request or call exceeded its time bound
    - CONNECTION_ERROR: Could not establish connection
    - RESPONSE_SIZE_EXCEEDED: Response exceeded max size limit
    - HTTP_4XX: Client error status
    - HTTP_5XX: Server error status
    - RATE_LIMITED: 429 Too Many Requests
    - INVALID_PAYLOAD: Body was not a playlist document
    - UNKNOWN: Unclassified error
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RESPONSE_SIZE_EXCEEDED = "RESPONSE_SIZE_EXCEEDED"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    UNKNOWN = "UNKNOWN"


class RemoteSourceError(Exception):
    """Raised when the remote source cannot supply a playlist."""

    def __init__(
        self,
        error_class: FetchErrorClass,
        message: str,
        status_code: int | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            error_class: Classification of the failure.
            message: Human-readable message.
            status_code: HTTP status code if available.
        """
        self.error_class = error_class
        self.status_code = status_code
        super().__init__(message)


class RemoteTimeoutError(RemoteSourceError):
    """Raised when the remote source did not answer in time."""

    def __init__(self, message: str) -> None:
        """Initialize the timeout error."""
        super().__init__(FetchErrorClass.NETWORK_TIMEOUT, message)


class RemoteVideo(BaseModel):
    """One video as served by the playlist endpoint.

    Unknown fields (``updated``, ``closedCaptions`` and anything added
    later) are accepted and ignored by the pipeline.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str | None = Field(default=None, description="Stable identifier, if served")
    title: str
    description: str = ""
    url: str = Field(min_length=1)
    thumbnail: str = Field(
        default="",
        validation_alias=AliasChoices("thumbnail", "thumbnailUrl", "thumbnail_url"),
    )
    media_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("media_url", "mediaUrl", "video_url"),
    )
    updated: str | None = None
    closed_captions: str | None = Field(
        default=None,
        validation_alias=AliasChoices("closedCaptions", "closed_captions"),
    )


class RemotePlaylist(BaseModel):
    """Container document returned by the playlist endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    videos: list[RemoteVideo] = Field(default_factory=list)
