"""File backend: notes, the id counter and version history in one JSON document.

The document is mirrored in memory and the in-memory copy answers every read.
Writes go through a temp file plus ``os.replace``, so an interrupted write
leaves the previous ``notes.json`` in place. None of the ``async`` methods
below await anything, which keeps each read-modify-write a single step on the
event loop.
"""

import asyncio
import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from webnotes.schemas.note import MAX_TAGS, NoteCreate, NoteResponse, NoteUpdate, NoteVersionResponse
from webnotes.schemas.tag import TagCount
from webnotes.services.store import (
    DEFAULT_TITLE,
    MAX_VERSIONS,
    NoteStore,
    StorageError,
    new_note_fields,
    note_changes,
    search_terms,
)

logger = logging.getLogger(__name__)

DB_FILENAME = "notes.json"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _sort_key(dt: datetime) -> float:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def atomic_write_json(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)


def _upgrade_note(raw: dict[str, Any], loaded_at: str) -> dict[str, Any]:
    note = dict(raw)
    raw_tags = note.get("tags")
    tags = [t for t in raw_tags if isinstance(t, str)] if isinstance(raw_tags, list) else []
    # Older documents kept a single category string instead of tags
    category = note.pop("category", None)
    if isinstance(category, str) and category.strip():
        tags.append(category.strip())
    note["tags"] = list(dict.fromkeys(tags))
    if not note.get("title"):
        note["title"] = DEFAULT_TITLE
    for key in ("content", "language", "pinned"):
        if note.get(key) is None:
            note.pop(key, None)
    note["created_at"] = note.get("created_at") or note.get("updated_at") or loaded_at
    note["updated_at"] = note.get("updated_at") or note["created_at"]
    return note


def _upgrade_version(raw: dict[str, Any], saved_at: str) -> dict[str, Any]:
    version = dict(raw)
    if not version.get("saved_at"):
        version["saved_at"] = saved_at
    version.setdefault("title", DEFAULT_TITLE)
    version.setdefault("content", "")
    return version


class NotesDocument(BaseModel):
    notes: list[NoteResponse] = []
    next_id: int = Field(1, alias="nextId")
    versions: dict[int, list[NoteVersionResponse]] = {}

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        notes = data.get("notes")
        loaded_at = _utc_now().isoformat()
        notes = [_upgrade_note(n, loaded_at) for n in notes if isinstance(n, dict)] if isinstance(notes, list) else []
        data["notes"] = notes

        highest = max((n["id"] for n in notes if isinstance(n.get("id"), int)), default=0)
        next_id = data.get("nextId")
        if not isinstance(next_id, int) or next_id <= highest:
            data["nextId"] = highest + 1

        # Snapshots without a timestamp take their note's last update
        updated_by_id = {str(n.get("id")): n["updated_at"] for n in notes}
        versions = data.get("versions")
        if not isinstance(versions, dict):
            versions = {}
        data["versions"] = {
            note_id: [_upgrade_version(v, updated_by_id[str(note_id)]) for v in history if isinstance(v, dict)]
            for note_id, history in versions.items()
            if str(note_id) in updated_by_id and isinstance(history, list)
        }
        return data

    def dump(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class FileNoteStore(NoteStore):
    backend_name = "file"

    def __init__(self, data_dir: str | Path, flush_delay: float = 0.0) -> None:
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / DB_FILENAME
        self.flush_delay = flush_delay
        self._doc = NotesDocument()
        self._dirty = False
        self._flush_handle: asyncio.TimerHandle | None = None

    # -- persistence -------------------------------------------------------

    async def init(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._doc, upgraded = self._load()
        if upgraded:
            self._write()
            logger.info("Rewrote %s in the current document format", self.path)
        logger.info("File-based storage: %s (%s notes)", self.path, len(self._doc.notes))

    def _load(self) -> tuple[NotesDocument, bool]:
        if not self.path.exists():
            return NotesDocument(), False
        text = self.path.read_text(encoding="utf-8")
        try:
            raw = json.loads(text)
            doc = NotesDocument.model_validate(raw)
        except ValueError as e:
            backup = self.path.with_suffix(self.path.suffix + ".corrupt")
            self.path.replace(backup)
            logger.warning("Corrupted data file, starting fresh (kept as %s): %s", backup, e)
            return NotesDocument(), False
        return doc, raw != json.loads(doc.dump())

    def _write(self) -> None:
        atomic_write_json(self.path, self._doc.dump())
        self._dirty = False

    def _commit(self) -> None:
        """Make the latest mutation durable now, or schedule a coalesced flush."""
        self._dirty = True
        if self.flush_delay <= 0:
            try:
                self._write()
            except OSError as e:
                logger.error("Failed to write %s, reverting to last saved state", self.path, extra={"error": str(e)})
                self._doc, _ = self._load()
                self._dirty = False
                raise StorageError(f"could not write {self.path}") from e
            return
        if self._flush_handle is None:
            loop = asyncio.get_running_loop()
            self._flush_handle = loop.call_later(self.flush_delay, self._scheduled_flush)

    def _scheduled_flush(self) -> None:
        self._flush_handle = None
        try:
            self.flush()
        except OSError:
            logger.exception("Scheduled flush of %s failed, retrying", self.path)
            loop = asyncio.get_running_loop()
            self._flush_handle = loop.call_later(self.flush_delay, self._scheduled_flush)

    def flush(self) -> None:
        """Write pending changes to disk immediately."""
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        if self._dirty:
            self._write()

    @property
    def dirty(self) -> bool:
        return self._dirty

    async def close(self) -> None:
        self.flush()

    async def reset(self) -> None:
        """Forget every note and remove the document from disk."""
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        self._doc = NotesDocument()
        self._dirty = False
        for path in (self.path, self.path.with_suffix(self.path.suffix + ".tmp")):
            if path.exists():
                path.unlink()

    # -- notes -------------------------------------------------------------

    def _find(self, note_id: int) -> NoteResponse | None:
        for note in self._doc.notes:
            if note.id == note_id:
                return note
        return None

    async def create_note(self, data: NoteCreate) -> NoteResponse:
        now = _utc_now()
        note = NoteResponse(id=self._doc.next_id, created_at=now, updated_at=now, **new_note_fields(data))
        self._doc.next_id += 1
        self._doc.notes.append(note)
        self._commit()
        return note.model_copy(deep=True)

    async def get_note(self, note_id: int) -> NoteResponse | None:
        note = self._find(note_id)
        return note.model_copy(deep=True) if note else None

    async def list_notes(self, query: str | None = None, tag: str | None = None) -> list[NoteResponse]:
        terms = search_terms(query)
        result = []
        for note in self._doc.notes:
            if tag == "" and note.tags:
                continue
            if tag and tag not in note.tags:
                continue
            if terms:
                haystack = f"{note.title} {note.content}".lower()
                if not all(term in haystack for term in terms):
                    continue
            result.append(note.model_copy(deep=True))
        result.sort(key=lambda n: (not n.pinned, -_sort_key(n.updated_at)))
        return result

    async def update_note(self, note_id: int, data: NoteUpdate) -> NoteResponse | None:
        note = self._find(note_id)
        if note is None:
            return None
        now = _utc_now()
        changes = note_changes(data)
        if "content" in changes and changes["content"] != note.content:
            self._record_version(note, now)
        for field, value in changes.items():
            setattr(note, field, value)
        note.updated_at = now
        self._commit()
        return note.model_copy(deep=True)

    def _record_version(self, note: NoteResponse, saved_at: datetime) -> None:
        history = self._doc.versions.setdefault(note.id, [])
        history.append(
            NoteVersionResponse(title=note.title, content=note.content, language=note.language, saved_at=saved_at)
        )
        del history[:-MAX_VERSIONS]

    async def delete_note(self, note_id: int) -> bool:
        for idx, note in enumerate(self._doc.notes):
            if note.id == note_id:
                del self._doc.notes[idx]
                self._doc.versions.pop(note_id, None)
                self._commit()
                return True
        return False

    async def get_versions(self, note_id: int, newest_first: bool = False) -> list[NoteVersionResponse]:
        history = [v.model_copy() for v in self._doc.versions.get(note_id, [])]
        if newest_first:
            history.reverse()
        return history

    # -- tags --------------------------------------------------------------

    async def list_tags(self) -> list[TagCount]:
        counts = Counter(tag for note in self._doc.notes for tag in note.tags)
        return [TagCount(tag=tag, count=count) for tag, count in sorted(counts.items())]

    async def rename_tag(self, old_name: str, new_name: str) -> int:
        if old_name == new_name:
            return 0
        now = _utc_now()
        modified = 0
        for note in self._doc.notes:
            if old_name not in note.tags:
                continue
            if new_name in note.tags:
                note.tags = [t for t in note.tags if t != old_name]
            else:
                note.tags = [new_name if t == old_name else t for t in note.tags]
            note.updated_at = now
            modified += 1
        if modified:
            self._commit()
        return modified

    async def delete_tag(self, name: str) -> int:
        now = _utc_now()
        modified = 0
        for note in self._doc.notes:
            if name in note.tags:
                note.tags = [t for t in note.tags if t != name]
                note.updated_at = now
                modified += 1
        if modified:
            self._commit()
        return modified

    # -- bulk --------------------------------------------------------------

    async def bulk_delete(self, ids: list[int]) -> int:
        wanted = set(ids)
        kept = [n for n in self._doc.notes if n.id not in wanted]
        deleted = len(self._doc.notes) - len(kept)
        if not deleted:
            return 0
        for note_id in wanted:
            self._doc.versions.pop(note_id, None)
        self._doc.notes = kept
        self._commit()
        return deleted

    async def bulk_tag(self, ids: list[int], tag: str) -> int:
        wanted = set(ids)
        now = _utc_now()
        tagged = 0
        for note in self._doc.notes:
            if note.id not in wanted:
                continue
            if tag not in note.tags:
                if len(note.tags) >= MAX_TAGS:
                    continue
                note.tags = note.tags + [tag]
            note.updated_at = now
            tagged += 1
        if tagged:
            self._commit()
        return tagged

    async def health_check(self) -> dict[str, Any]:
        return {"status": "ok", "db": self.backend_name}
