from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from webnotes.dependencies import get_store
from webnotes.schemas.note import MAX_NOTE_ID, NoteCreate, NoteResponse, NoteUpdate, NoteVersionResponse
from webnotes.services.store import NoteStore

router = APIRouter(prefix="/api/notes", tags=["notes"])

NoteId = Annotated[int, Path(ge=1, le=MAX_NOTE_ID)]


@router.get("", response_model=list[NoteResponse])
async def list_notes(
    q: str | None = Query(None, max_length=500),
    tag: str | None = Query(None, description="Exact tag; empty string selects untagged notes"),
    store: NoteStore = Depends(get_store),
) -> list[NoteResponse]:
    return await store.list_notes(q, tag)


@router.post("", response_model=NoteResponse, status_code=201)
async def create_note(
    data: NoteCreate,
    store: NoteStore = Depends(get_store),
) -> NoteResponse:
    return await store.create_note(data)


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: NoteId,
    store: NoteStore = Depends(get_store),
) -> NoteResponse:
    note = await store.get_note(note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Not found")
    return note


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: NoteId,
    data: NoteUpdate,
    store: NoteStore = Depends(get_store),
) -> NoteResponse:
    note = await store.update_note(note_id, data)
    if note is None:
        raise HTTPException(status_code=404, detail="Not found")
    return note


@router.delete("/{note_id}", status_code=204)
async def delete_note(
    note_id: NoteId,
    store: NoteStore = Depends(get_store),
) -> None:
    if not await store.delete_note(note_id):
        raise HTTPException(status_code=404, detail="Not found")


@router.get("/{note_id}/versions", response_model=list[NoteVersionResponse])
async def list_versions(
    note_id: NoteId,
    order: Literal["asc", "desc"] = "desc",
    store: NoteStore = Depends(get_store),
) -> list[NoteVersionResponse]:
    """Saved snapshots of the note body, most recent first unless ``order=asc``."""
    if await store.get_note(note_id) is None:
        raise HTTPException(status_code=404, detail="Not found")
    return await store.get_versions(note_id, newest_first=order == "desc")
