"""Pick the storage backend once, at startup."""

import logging

from sqlalchemy.exc import SQLAlchemyError

from webnotes.config import Settings
from webnotes.services.file_store import FileNoteStore
from webnotes.services.pg_store import PostgresNoteStore
from webnotes.services.store import NoteStore

logger = logging.getLogger(__name__)


def file_store_from_settings(settings: Settings) -> FileNoteStore:
    return FileNoteStore(settings.data_dir, flush_delay=settings.flush_delay_ms / 1000)


async def open_store(settings: Settings) -> NoteStore:
    """PostgreSQL when configured and reachable, otherwise the JSON file store."""
    url = settings.relational_url
    if url:
        store = PostgresNoteStore(url, connect_timeout=settings.db_connect_timeout)
        try:
            await store.init()
        except (SQLAlchemyError, OSError, TimeoutError) as e:
            logger.warning("PostgreSQL unavailable, falling back to file storage", extra={"error": str(e)})
            await store.close()
        else:
            logger.info("Using PostgreSQL storage")
            return store

    store = file_store_from_settings(settings)
    await store.init()
    return store
