"""Domain model exposed to playlist consumers."""

from pydantic import BaseModel, ConfigDict

from devbytes.store.models import Item


SHORT_DESCRIPTION_LENGTH = 200

_TRAILING_PUNCTUATION = (", ", "; ", ": ", " ")


def smart_truncate(text: str, length: int) -> str:
    """Truncate ``text`` at a word boundary once it exceeds ``length``.

    Whole words are kept until the result is longer than ``length``;
    trailing separators are stripped and ``...`` marks dropped words.
    """
    builder = ""
    has_more = False
    for word in text.split(" "):
        if len(builder) > length:
            has_more = True
            break
        builder += word + " "

    for suffix in _TRAILING_PUNCTUATION:
        if builder.endswith(suffix):
            builder = builder[: -len(suffix)]

    if has_more:
        builder += "..."
    return builder


class Video(BaseModel):
    """A playlist entry as shown to consumers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    title: str
    description: str
    url: str
    thumbnail_url: str
    media_url: str

    @property
    def short_description(self) -> str:
        """Description truncated for list rows."""
        return smart_truncate(self.description, SHORT_DESCRIPTION_LENGTH)

    @classmethod
    def from_item(cls, item: Item) -> "Video":
        """Map a cache item onto the domain model."""
        return cls(**item.model_dump())
