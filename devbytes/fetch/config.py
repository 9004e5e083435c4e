"""Configuration model for the remote playlist source."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from devbytes.fetch.constants import DEFAULT_MAX_RESPONSE_SIZE_BYTES, DEFAULT_PLAYLIST_URL


class FetchConfig(BaseModel):
    """Configuration for fetching the playlist over HTTP."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    playlist_url: Annotated[str, Field(min_length=1)] = DEFAULT_PLAYLIST_URL
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = "devbytes-cache/0.1"
    timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = 30.0
    max_response_size_bytes: Annotated[int, Field(ge=1024, le=100 * 1024 * 1024)] = (
        DEFAULT_MAX_RESPONSE_SIZE_BYTES
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra request headers"
    )

    @field_validator("playlist_url")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        """Only http(s) endpoints are supported."""
        if not v.startswith(("http://", "https://")):
            msg = f"playlist_url must be http or https: {v}"
            raise ValueError(msg)
        return v

    @field_validator("headers")
    @classmethod
    def validate_no_auth_headers(cls, v: dict[str, str]) -> dict[str, str]:
        """Ensure no credentials are stored in config."""
        forbidden = {"authorization", "cookie", "x-api-key"}
        for key in v:
            if key.lower() in forbidden:
                msg = (
                    f"Header '{key}' must not be stored in config; "
                    "use environment variables"
                )
                raise ValueError(msg)
        return v
