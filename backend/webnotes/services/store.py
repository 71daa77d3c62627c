"""Storage contract shared by the file and PostgreSQL backends."""

from abc import ABC, abstractmethod
from typing import Any

from webnotes.schemas.note import NoteCreate, NoteResponse, NoteUpdate, NoteVersionResponse
from webnotes.schemas.tag import TagCount

MAX_VERSIONS = 20
DEFAULT_TITLE = "Untitled"
DEFAULT_LANGUAGE = "plaintext"


class StorageError(RuntimeError):
    """A mutation could not be made durable. The previous state is still in effect."""


def search_terms(query: str | None) -> list[str]:
    if not query:
        return []
    return query.lower().split()


def new_note_fields(data: NoteCreate) -> dict[str, Any]:
    return {
        "title": data.title or DEFAULT_TITLE,
        "content": data.content or "",
        "language": data.language or DEFAULT_LANGUAGE,
        "pinned": bool(data.pinned),
        "tags": list(dict.fromkeys(data.tags or [])),
    }


def note_changes(data: NoteUpdate) -> dict[str, Any]:
    changes = data.changes()
    if "title" in changes and not changes["title"]:
        changes["title"] = DEFAULT_TITLE
    if "language" in changes and not changes["language"]:
        changes["language"] = DEFAULT_LANGUAGE
    if "tags" in changes:
        changes["tags"] = list(dict.fromkeys(changes["tags"]))
    return changes


class NoteStore(ABC):
    """Note CRUD, bounded version history, derived tag index and bulk operations.

    Unknown ids are not errors: lookups return ``None`` and deletions ``False``.
    Input is assumed to be validated by the caller (see ``webnotes.schemas``).
    """

    backend_name: str = ""

    @abstractmethod
    async def init(self) -> None: ...

    async def close(self) -> None:
        return None

    @abstractmethod
    async def reset(self) -> None:
        """Remove every note and version and restart id assignment."""

    @abstractmethod
    async def create_note(self, data: NoteCreate) -> NoteResponse: ...

    @abstractmethod
    async def get_note(self, note_id: int) -> NoteResponse | None: ...

    @abstractmethod
    async def list_notes(self, query: str | None = None, tag: str | None = None) -> list[NoteResponse]:
        """Pinned notes first. Without a query, most recently updated next.

        ``tag=""`` selects notes without any tag; ``tag=None`` applies no filter.
        """

    @abstractmethod
    async def update_note(self, note_id: int, data: NoteUpdate) -> NoteResponse | None:
        """Apply the fields set on ``data``; snapshot the old body if content changes."""

    @abstractmethod
    async def delete_note(self, note_id: int) -> bool: ...

    @abstractmethod
    async def list_tags(self) -> list[TagCount]: ...

    @abstractmethod
    async def rename_tag(self, old_name: str, new_name: str) -> int: ...

    @abstractmethod
    async def delete_tag(self, name: str) -> int: ...

    @abstractmethod
    async def bulk_delete(self, ids: list[int]) -> int: ...

    @abstractmethod
    async def bulk_tag(self, ids: list[int], tag: str) -> int: ...

    @abstractmethod
    async def get_versions(self, note_id: int, newest_first: bool = False) -> list[NoteVersionResponse]:
        """Retained snapshots, oldest first unless ``newest_first``."""

    @abstractmethod
    async def health_check(self) -> dict[str, Any]: ...
