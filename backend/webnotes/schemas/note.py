from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

MAX_TITLE_LENGTH = 255
MAX_CONTENT_LENGTH = 1024 * 1024
MAX_LANGUAGE_LENGTH = 50
MAX_TAGS = 20
MAX_TAG_LENGTH = 100
# ids are PostgreSQL INTEGER columns
MAX_NOTE_ID = 2**31 - 1


def check_tag(tag: Any) -> str:
    if not isinstance(tag, str) or not tag or len(tag) > MAX_TAG_LENGTH:
        raise ValueError(f"each tag must be a non-empty string (max {MAX_TAG_LENGTH})")
    if tag != tag.strip():
        raise ValueError("tags cannot have leading/trailing whitespace")
    return tag


def check_tags(tags: Any) -> list[str]:
    if not isinstance(tags, list):
        raise ValueError("tags must be an array")
    for tag in tags:
        check_tag(tag)
    if len(set(tags)) != len(tags):
        raise ValueError("duplicate tags not allowed")
    if len(tags) > MAX_TAGS:
        raise ValueError(f"too many tags (max {MAX_TAGS})")
    return tags


class NoteBase(BaseModel):
    title: str | None = None
    content: str | None = None
    language: str | None = None
    pinned: bool | None = None
    tags: list[str] | None = None

    @field_validator("title", "content", "language", mode="before")
    @classmethod
    def _must_be_string(cls, value: Any, info: ValidationInfo) -> Any:
        if value is not None and not isinstance(value, str):
            raise ValueError(f"{info.field_name} must be a string")
        return value

    @field_validator("title")
    @classmethod
    def _title_length(cls, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_TITLE_LENGTH:
            raise ValueError(f"title too long (max {MAX_TITLE_LENGTH})")
        return value

    @field_validator("content")
    @classmethod
    def _content_length(cls, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_CONTENT_LENGTH:
            raise ValueError("content too long (max 1 MB)")
        return value

    @field_validator("language")
    @classmethod
    def _language_length(cls, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_LANGUAGE_LENGTH:
            raise ValueError(f"language too long (max {MAX_LANGUAGE_LENGTH})")
        return value

    @field_validator("pinned", mode="before")
    @classmethod
    def _pinned_is_bool(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, bool):
            raise ValueError("pinned must be a boolean")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _valid_tags(cls, value: Any) -> Any:
        if value is None:
            return value
        return check_tags(value)


class NoteCreate(NoteBase):
    """Fields for a new note. Anything left out gets the store default."""


class NoteUpdate(NoteBase):
    """Partial update: only fields sent with a non-null value are applied."""

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class NoteResponse(BaseModel):
    id: int
    title: str
    content: str = ""
    language: str = "plaintext"
    pinned: bool = False
    tags: list[str] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteVersionResponse(BaseModel):
    title: str
    content: str
    language: str = "plaintext"
    saved_at: datetime

    model_config = {"from_attributes": True}


class BulkRequest(BaseModel):
    ids: Any = Field(None, validate_default=True)
    action: Any = Field(None, validate_default=True)
    tag: Any = None

    @field_validator("ids", mode="before")
    @classmethod
    def _valid_ids(cls, value: Any) -> list[int]:
        if not isinstance(value, list) or not value:
            raise ValueError("ids must be a non-empty array")
        for note_id in value:
            if isinstance(note_id, bool) or not isinstance(note_id, int) or not 1 <= note_id <= MAX_NOTE_ID:
                raise ValueError("invalid ids")
        return value

    @field_validator("action", mode="before")
    @classmethod
    def _known_action(cls, value: Any) -> Literal["delete", "tag"]:
        if value not in ("delete", "tag"):
            raise ValueError("unknown action")
        return value

    @model_validator(mode="after")
    def _tag_for_tag_action(self) -> "BulkRequest":
        if self.action == "tag":
            if not isinstance(self.tag, str):
                raise ValueError("tag must be a string")
            check_tag(self.tag)
        return self
