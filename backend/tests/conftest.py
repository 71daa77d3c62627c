"""Shared fixtures: stores for both backends and an API client over the file store."""

import asyncio
import os

import pytest
from fastapi.testclient import TestClient

from webnotes.main import create_app
from webnotes.middleware.rate_limit import limiter
from webnotes.services.file_store import FileNoteStore
from webnotes.services.pg_store import PostgresNoteStore

# PostgreSQL tests only run against a throwaway database given here
TEST_DATABASE_URL = os.environ.get("WEBNOTES_TEST_DATABASE_URL")


@pytest.fixture
async def file_store(tmp_path):
    store = FileNoteStore(tmp_path)
    await store.init()
    yield store
    await store.close()


@pytest.fixture(params=["file", "postgres"])
async def store(request, tmp_path):
    """Every contract test runs once per backend."""
    if request.param == "postgres":
        if not TEST_DATABASE_URL:
            pytest.skip("WEBNOTES_TEST_DATABASE_URL not set")
        note_store = PostgresNoteStore(TEST_DATABASE_URL)
        await note_store.init()
        await note_store.reset()
    else:
        note_store = FileNoteStore(tmp_path)
        await note_store.init()
    yield note_store
    await note_store.close()


@pytest.fixture
def client(tmp_path):
    store = FileNoteStore(tmp_path)
    asyncio.run(store.init())
    limiter.reset()
    with TestClient(create_app(store)) as c:
        yield c
