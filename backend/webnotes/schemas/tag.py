from typing import Any

from pydantic import BaseModel, Field, field_validator

from webnotes.schemas.note import MAX_TAG_LENGTH


class TagCount(BaseModel):
    tag: str
    count: int


class TagRename(BaseModel):
    new_name: Any = Field(None, validation_alias="newName", validate_default=True)

    @field_validator("new_name", mode="before")
    @classmethod
    def _clean_name(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("invalid newName")
        value = value.strip()
        if not value or len(value) > MAX_TAG_LENGTH:
            raise ValueError("invalid newName")
        return value


class TagsUpdated(BaseModel):
    updated: int
