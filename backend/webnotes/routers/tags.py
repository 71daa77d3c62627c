from fastapi import APIRouter, Depends

from webnotes.dependencies import get_store
from webnotes.schemas.tag import TagCount, TagRename, TagsUpdated
from webnotes.services.store import NoteStore

router = APIRouter(prefix="/api/tags", tags=["tags"])


@router.get("", response_model=list[TagCount])
async def list_tags(store: NoteStore = Depends(get_store)) -> list[TagCount]:
    return await store.list_tags()


@router.put("/{name}", response_model=TagsUpdated)
async def rename_tag(
    name: str,
    data: TagRename,
    store: NoteStore = Depends(get_store),
) -> TagsUpdated:
    return TagsUpdated(updated=await store.rename_tag(name, data.new_name))


@router.delete("/{name}", response_model=TagsUpdated)
async def delete_tag(
    name: str,
    store: NoteStore = Depends(get_store),
) -> TagsUpdated:
    return TagsUpdated(updated=await store.delete_tag(name))
