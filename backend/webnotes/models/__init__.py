from webnotes.models.note import Note
from webnotes.models.note_version import NoteVersion

__all__ = ["Note", "NoteVersion"]
