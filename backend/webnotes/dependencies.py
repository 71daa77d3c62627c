from fastapi import Request

from webnotes.services.store import NoteStore


def get_store(request: Request) -> NoteStore:
    return request.app.state.store
