"""Batch operations on notes (delete, tag)."""

from fastapi import APIRouter, Depends, Request

from webnotes.dependencies import get_store
from webnotes.middleware.rate_limit import bulk_limiter
from webnotes.schemas.note import BulkRequest
from webnotes.services.store import NoteStore

router = APIRouter(prefix="/api/notes", tags=["notes"])


@router.post("/bulk")
@bulk_limiter
async def bulk_notes(
    request: Request,
    body: BulkRequest,
    store: NoteStore = Depends(get_store),
) -> dict:
    if body.action == "delete":
        return {"deleted": await store.bulk_delete(body.ids)}
    return {"tagged": await store.bulk_tag(body.ids, body.tag)}
