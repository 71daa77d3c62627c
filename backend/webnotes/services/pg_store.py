"""PostgreSQL backend: ``notes`` and ``note_versions`` tables, weighted full-text search."""

import asyncio
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
from sqlalchemy import Delete, Text, Update, case, delete, func, literal_column, or_, select, text, update
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.exc import SQLAlchemyError

from webnotes.database import create_engine, create_session_maker
from webnotes.models import Note, NoteVersion
from webnotes.schemas.note import MAX_TAGS, NoteCreate, NoteResponse, NoteUpdate, NoteVersionResponse
from webnotes.schemas.tag import TagCount
from webnotes.services.store import MAX_VERSIONS, NoteStore, new_note_fields, note_changes, search_terms

logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"
TAG_ARRAY = ARRAY(Text)
TS_CONFIG = literal_column("'english'::regconfig")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def run_migrations(database_url: str) -> None:
    alembic_cfg = Config(str(ALEMBIC_INI))
    # ConfigParser interpolation: a literal % in a password must be doubled
    alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    command.upgrade(alembic_cfg, "head")


def prefix_tsquery(query: str | None) -> str | None:
    """'java guide' -> 'java:* & guide:*'; None when the query has no word characters."""
    if not query:
        return None
    words = re.findall(r"\w+", query.lower())
    if not words:
        return None
    return " & ".join(f"{w}:*" for w in words)


def _evict_versions(note_id: int) -> Delete:
    newest = (
        select(NoteVersion.id)
        .where(NoteVersion.note_id == note_id)
        .order_by(NoteVersion.saved_at.desc(), NoteVersion.id.desc())
        .limit(MAX_VERSIONS)
    )
    return (
        delete(NoteVersion)
        .where(NoteVersion.note_id == note_id, NoteVersion.id.not_in(newest))
        .execution_options(synchronize_session=False)
    )


class PostgresNoteStore(NoteStore):
    backend_name = "postgres"

    def __init__(self, database_url: str, connect_timeout: float = 5.0) -> None:
        self.database_url = database_url
        self._engine = create_engine(database_url, connect_timeout)
        self._sessions = create_session_maker(self._engine)

    async def init(self) -> None:
        # Fail fast on an unreachable server before alembic gets involved
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, run_migrations, self.database_url)
        logger.info("Migrations applied")

    async def close(self) -> None:
        await self._engine.dispose()

    async def reset(self) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(text("TRUNCATE note_versions, notes RESTART IDENTITY CASCADE"))

    async def create_note(self, data: NoteCreate) -> NoteResponse:
        now = _utc_now()
        async with self._sessions() as db:
            note = Note(created_at=now, updated_at=now, **new_note_fields(data))
            db.add(note)
            await db.commit()
            await db.refresh(note)
            return NoteResponse.model_validate(note)

    async def get_note(self, note_id: int) -> NoteResponse | None:
        async with self._sessions() as db:
            note = await db.get(Note, note_id)
            return NoteResponse.model_validate(note) if note else None

    async def list_notes(self, query: str | None = None, tag: str | None = None) -> list[NoteResponse]:
        stmt = select(Note)
        if tag == "":
            stmt = stmt.where(func.cardinality(Note.tags) == 0)
        elif tag:
            stmt = stmt.where(Note.tags.contains([tag]))

        order_by = [Note.pinned.desc()]
        tsquery = prefix_tsquery(query)
        if tsquery:
            ts = func.to_tsquery(TS_CONFIG, tsquery)
            stmt = stmt.where(Note.search_vector.op("@@", is_comparison=True)(ts))
            order_by.append(func.ts_rank(Note.search_vector, ts).desc())
        else:
            haystack = func.lower(Note.title + " " + Note.content, type_=Text)
            for term in search_terms(query):
                stmt = stmt.where(haystack.contains(term, autoescape=True))
        order_by += [Note.updated_at.desc(), Note.id.desc()]

        async with self._sessions() as db:
            result = await db.execute(stmt.order_by(*order_by))
            return [NoteResponse.model_validate(n) for n in result.scalars().all()]

    async def update_note(self, note_id: int, data: NoteUpdate) -> NoteResponse | None:
        async with self._sessions() as db:
            async with db.begin():
                result = await db.execute(select(Note).where(Note.id == note_id).with_for_update())
                note = result.scalar_one_or_none()
                if note is None:
                    return None
                now = _utc_now()
                changes = note_changes(data)
                if "content" in changes and changes["content"] != note.content:
                    db.add(
                        NoteVersion(
                            note_id=note.id,
                            title=note.title,
                            content=note.content,
                            language=note.language,
                            saved_at=now,
                        )
                    )
                    await db.flush()
                    await db.execute(_evict_versions(note.id))
                for field, value in changes.items():
                    setattr(note, field, value)
                note.updated_at = now
            return NoteResponse.model_validate(note)

    async def delete_note(self, note_id: int) -> bool:
        async with self._sessions() as db:
            result = await db.execute(
                delete(Note).where(Note.id == note_id).execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount > 0

    async def get_versions(self, note_id: int, newest_first: bool = False) -> list[NoteVersionResponse]:
        if newest_first:
            order_by = (NoteVersion.saved_at.desc(), NoteVersion.id.desc())
        else:
            order_by = (NoteVersion.saved_at.asc(), NoteVersion.id.asc())
        async with self._sessions() as db:
            result = await db.execute(
                select(NoteVersion).where(NoteVersion.note_id == note_id).order_by(*order_by)
            )
            return [NoteVersionResponse.model_validate(v) for v in result.scalars().all()]

    async def list_tags(self) -> list[TagCount]:
        tags = select(func.unnest(Note.tags).label("tag")).subquery()
        # Code-point order, same as the file backend's sorted()
        stmt = select(tags.c.tag, func.count()).group_by(tags.c.tag).order_by(tags.c.tag.collate("C"))
        async with self._sessions() as db:
            result = await db.execute(stmt)
            return [TagCount(tag=tag, count=count) for tag, count in result.all()]

    async def _update_tags(self, stmt: Update) -> int:
        async with self._sessions() as db:
            result = await db.execute(stmt.execution_options(synchronize_session=False))
            await db.commit()
            return result.rowcount

    async def rename_tag(self, old_name: str, new_name: str) -> int:
        if old_name == new_name:
            return 0
        new_tags = case(
            (Note.tags.contains([new_name]), func.array_remove(Note.tags, old_name, type_=TAG_ARRAY)),
            else_=func.array_replace(Note.tags, old_name, new_name, type_=TAG_ARRAY),
        )
        return await self._update_tags(
            update(Note).where(Note.tags.contains([old_name])).values(tags=new_tags, updated_at=_utc_now())
        )

    async def delete_tag(self, name: str) -> int:
        return await self._update_tags(
            update(Note)
            .where(Note.tags.contains([name]))
            .values(tags=func.array_remove(Note.tags, name, type_=TAG_ARRAY), updated_at=_utc_now())
        )

    async def bulk_delete(self, ids: list[int]) -> int:
        async with self._sessions() as db:
            result = await db.execute(
                delete(Note).where(Note.id.in_(set(ids))).execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount

    async def bulk_tag(self, ids: list[int], tag: str) -> int:
        has_tag = Note.tags.contains([tag])
        new_tags = case((has_tag, Note.tags), else_=func.array_append(Note.tags, tag, type_=TAG_ARRAY))
        return await self._update_tags(
            update(Note)
            .where(Note.id.in_(set(ids)), or_(has_tag, func.cardinality(Note.tags) < MAX_TAGS))
            .values(tags=new_tags, updated_at=_utc_now())
        )

    async def health_check(self) -> dict[str, Any]:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database health check failed", extra={"error": str(e)})
            return {"status": "error", "db": self.backend_name}
        return {"status": "ok", "db": self.backend_name}
