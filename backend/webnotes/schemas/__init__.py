from webnotes.schemas.note import (
    BulkRequest,
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    NoteVersionResponse,
)
from webnotes.schemas.tag import TagCount, TagRename, TagsUpdated

__all__ = [
    "BulkRequest",
    "NoteCreate",
    "NoteResponse",
    "NoteUpdate",
    "NoteVersionResponse",
    "TagCount",
    "TagRename",
    "TagsUpdated",
]
