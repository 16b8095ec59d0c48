"""ReferenceNote model for imported benchmark posts."""

from pydantic import BaseModel, field_validator


DEFAULT_NOTE_TYPE = "图文"

COUNTER_FIELDS = ("likes", "favorites", "comments", "shares", "image_count")


class ReferenceNote(BaseModel):
    """
    Imported engagement record of a third-party post.

    ``id`` addresses the record in storage; ``note_id`` is the source
    platform's identifier and is only used to detect duplicate imports.
    """
    id: str
    note_id: str = ""
    note_link: str = ""
    note_type: str = DEFAULT_NOTE_TYPE
    title: str = ""
    content: str = ""
    likes: int = 0
    favorites: int = 0
    comments: int = 0
    shares: int = 0
    published_at: str = ""
    author_id: str = ""
    author_link: str = ""
    author_name: str = ""
    image_count: int = 0
    cover_url: str = ""
    created_at: str

    @field_validator(*COUNTER_FIELDS, mode="before")
    @classmethod
    def _counter(cls, value):
        if value is None:
            return 0
        return value

    @field_validator(
        "note_id",
        "note_link",
        "title",
        "content",
        "published_at",
        "author_id",
        "author_link",
        "author_name",
        "cover_url",
        mode="before",
    )
    @classmethod
    def _text(cls, value):
        return "" if value is None else str(value)

    @field_validator("note_type", mode="before")
    @classmethod
    def _note_type(cls, value):
        text = "" if value is None else str(value).strip()
        return text or DEFAULT_NOTE_TYPE
