"""Behaviour both storage backends must share. Runs once per backend (see conftest)."""

import asyncio

from webnotes.schemas.note import NoteCreate, NoteUpdate
from webnotes.services.store import MAX_VERSIONS


async def make(store, **fields):
    return await store.create_note(NoteCreate(**fields))


async def edit(store, note_id, **fields):
    return await store.update_note(note_id, NoteUpdate(**fields))


class TestNoteCrud:
    """create / get / update / delete."""

    async def test_create_applies_defaults(self, store):
        note = await make(store)
        assert note.id == 1
        assert note.title == "Untitled"
        assert note.content == ""
        assert note.language == "plaintext"
        assert note.pinned is False
        assert note.tags == []
        assert note.created_at is not None
        assert note.updated_at is not None

    async def test_ids_auto_increment(self, store):
        first = await make(store)
        second = await make(store)
        assert (first.id, second.id) == (1, 2)

    async def test_create_keeps_given_values(self, store):
        note = await make(store, title="Test Note", content="Test content", language="javascript", tags=["work", "urgent"])
        assert note.title == "Test Note"
        assert note.content == "Test content"
        assert note.language == "javascript"
        assert note.tags == ["work", "urgent"]

    async def test_empty_title_falls_back_to_untitled(self, store):
        note = await make(store, title="")
        assert note.title == "Untitled"
        updated = await edit(store, note.id, title="")
        assert updated.title == "Untitled"

    async def test_get_missing_note_returns_none(self, store):
        assert await store.get_note(999) is None

    async def test_partial_update(self, store):
        note = await make(store, title="Original", content="Old", tags=["a"])
        updated = await edit(store, note.id, title="Updated")
        assert updated.title == "Updated"
        assert updated.content == "Old"
        assert updated.tags == ["a"]
        assert (await store.get_note(note.id)).title == "Updated"

    async def test_update_bumps_updated_at_only(self, store):
        note = await make(store, title="Test")
        await asyncio.sleep(0.01)
        updated = await edit(store, note.id, title="Modified")
        assert updated.updated_at > note.updated_at
        assert updated.created_at == note.created_at

    async def test_update_missing_note_returns_none(self, store):
        assert await edit(store, 999, title="Nope") is None

    async def test_delete_returns_true_then_false(self, store):
        note = await make(store, title="Delete me")
        assert await store.delete_note(note.id) is True
        assert await store.delete_note(note.id) is False
        assert await store.get_note(note.id) is None

    async def test_ids_are_not_reused_after_delete(self, store):
        first = await make(store)
        await store.delete_note(first.id)
        second = await make(store)
        assert second.id == 2


class TestListing:
    """Ordering, search and tag filters."""

    async def test_most_recently_updated_first(self, store):
        for title in ("First", "Second", "Third"):
            await make(store, title=title)
            await asyncio.sleep(0.01)
        notes = await store.list_notes()
        assert [n.title for n in notes] == ["Third", "Second", "First"]

    async def test_pinned_notes_come_first(self, store):
        pinned = await make(store, title="Pinned", pinned=True)
        await asyncio.sleep(0.01)
        await make(store, title="Newer")
        notes = await store.list_notes()
        assert [n.title for n in notes] == ["Pinned", "Newer"]
        assert notes[0].id == pinned.id

    async def test_updating_moves_note_to_top(self, store):
        old = await make(store, title="Old")
        await asyncio.sleep(0.01)
        await make(store, title="New")
        await asyncio.sleep(0.01)
        await edit(store, old.id, content="touched")
        notes = await store.list_notes()
        assert notes[0].title == "Old"

    async def test_search_matches_title(self, store):
        await make(store, title="JavaScript Guide", content="Learn JS")
        await make(store, title="Python Tutorial", content="Learn Python")
        notes = await store.list_notes("JavaScript")
        assert [n.title for n in notes] == ["JavaScript Guide"]

    async def test_search_matches_content_case_insensitively(self, store):
        await make(store, title="Recipe", content="Bake the BREAD slowly")
        await make(store, title="Other", content="nothing here")
        notes = await store.list_notes("bread")
        assert [n.title for n in notes] == ["Recipe"]

    async def test_search_requires_every_word(self, store):
        await make(store, title="Python Tutorial")
        await make(store, title="Python Guide")
        await make(store, title="Rust Tutorial")
        notes = await store.list_notes("python tutorial")
        assert [n.title for n in notes] == ["Python Tutorial"]

    async def test_blank_query_returns_everything(self, store):
        await make(store, title="One")
        await make(store, title="Two")
        assert len(await store.list_notes("")) == 2
        assert len(await store.list_notes(None)) == 2

    async def test_tag_filter_is_exact(self, store):
        await make(store, title="Work", tags=["work"])
        await make(store, title="Workshop", tags=["workshop"])
        await make(store, title="Personal", tags=["personal"])
        notes = await store.list_notes(tag="work")
        assert [n.title for n in notes] == ["Work"]

    async def test_empty_tag_selects_untagged_notes(self, store):
        await make(store, title="Tagged", tags=["x"])
        await make(store, title="Bare")
        notes = await store.list_notes(tag="")
        assert [n.title for n in notes] == ["Bare"]

    async def test_search_and_tag_combine(self, store):
        await make(store, title="Python at work", tags=["work"])
        await make(store, title="Python at home", tags=["home"])
        notes = await store.list_notes("python", "home")
        assert [n.title for n in notes] == ["Python at home"]


class TestVersions:
    """Snapshots of the previous body on content change."""

    async def test_create_edit_delete_lifecycle(self, store):
        note = await make(store, title="N", content="v0")
        await edit(store, note.id, content="v1")
        assert [v.content for v in await store.get_versions(note.id)] == ["v0"]
        await edit(store, note.id, content="v2")
        assert [v.content for v in await store.get_versions(note.id)] == ["v0", "v1"]
        await store.delete_note(note.id)
        assert await store.get_note(note.id) is None
        assert await store.get_versions(note.id) == []

    async def test_snapshot_holds_previous_fields(self, store):
        note = await make(store, title="Before", content="old body", language="python")
        await edit(store, note.id, title="After", content="new body", language="go")
        (version,) = await store.get_versions(note.id)
        assert version.title == "Before"
        assert version.content == "old body"
        assert version.language == "python"
        assert version.saved_at is not None

    async def test_no_snapshot_without_content_change(self, store):
        note = await make(store, title="T", content="same")
        await edit(store, note.id, title="Renamed")
        await edit(store, note.id, content="same")
        await edit(store, note.id, pinned=True, tags=["a"])
        assert await store.get_versions(note.id) == []

    async def test_history_is_capped(self, store):
        note = await make(store, content="v0")
        for i in range(1, 26):
            await edit(store, note.id, content=f"v{i}")
        versions = await store.get_versions(note.id)
        assert len(versions) == MAX_VERSIONS
        assert [v.content for v in versions] == [f"v{i}" for i in range(5, 25)]

    async def test_newest_first(self, store):
        note = await make(store, content="a")
        await edit(store, note.id, content="b")
        await edit(store, note.id, content="c")
        versions = await store.get_versions(note.id, newest_first=True)
        assert [v.content for v in versions] == ["b", "a"]

    async def test_unknown_note_has_no_versions(self, store):
        assert await store.get_versions(999) == []

    async def test_tag_operations_create_no_versions(self, store):
        note = await make(store, content="body", tags=["old"])
        await store.rename_tag("old", "new")
        await store.bulk_tag([note.id], "bulk")
        await store.delete_tag("bulk")
        assert await store.get_versions(note.id) == []


class TestTags:
    """Tag index derived from the notes."""

    async def test_list_tags_counts_and_sorts(self, store):
        await make(store, tags=["work", "urgent"])
        await make(store, tags=["work"])
        await make(store)
        tags = await store.list_tags()
        assert [(t.tag, t.count) for t in tags] == [("urgent", 1), ("work", 2)]

    async def test_list_tags_sorts_by_code_point(self, store):
        await make(store, tags=["b", "a", "B"])
        assert [t.tag for t in await store.list_tags()] == ["B", "a", "b"]

    async def test_rename_tag(self, store):
        note = await make(store, tags=["a", "old"])
        await make(store, tags=["other"])
        assert await store.rename_tag("old", "new") == 1
        assert (await store.get_note(note.id)).tags == ["a", "new"]
        assert [t.tag for t in await store.list_tags()] == ["a", "new", "other"]

    async def test_rename_into_existing_tag_does_not_duplicate(self, store):
        note = await make(store, tags=["old", "new"])
        assert await store.rename_tag("old", "new") == 1
        assert (await store.get_note(note.id)).tags == ["new"]

    async def test_rename_to_same_name_is_a_no_op(self, store):
        note = await make(store, tags=["same"])
        assert await store.rename_tag("same", "same") == 0
        assert (await store.get_note(note.id)).updated_at == note.updated_at

    async def test_rename_unknown_tag(self, store):
        await make(store, tags=["a"])
        assert await store.rename_tag("missing", "b") == 0

    async def test_rename_bumps_updated_at(self, store):
        note = await make(store, tags=["old"])
        await asyncio.sleep(0.01)
        await store.rename_tag("old", "new")
        assert (await store.get_note(note.id)).updated_at > note.updated_at

    async def test_delete_tag(self, store):
        first = await make(store, tags=["gone", "kept"])
        await make(store, tags=["gone"])
        await make(store, tags=["kept"])
        assert await store.delete_tag("gone") == 2
        assert (await store.get_note(first.id)).tags == ["kept"]
        assert [(t.tag, t.count) for t in await store.list_tags()] == [("kept", 2)]


class TestBulk:
    """Bulk delete and bulk tag."""

    async def test_bulk_delete_counts_existing_notes(self, store):
        first = await make(store, title="Delete 1")
        second = await make(store, title="Delete 2")
        kept = await make(store, title="Keep")
        assert await store.bulk_delete([first.id, second.id, 999]) == 2
        assert [n.id for n in await store.list_notes()] == [kept.id]

    async def test_bulk_delete_drops_versions(self, store):
        note = await make(store, content="a")
        await edit(store, note.id, content="b")
        await store.bulk_delete([note.id])
        assert await store.get_versions(note.id) == []

    async def test_bulk_delete_nothing_matching(self, store):
        await make(store)
        assert await store.bulk_delete([998, 999]) == 0
        assert len(await store.list_notes()) == 1

    async def test_bulk_tag(self, store):
        first = await make(store, title="Note 1")
        second = await make(store, title="Note 2", tags=["bulk"])
        assert await store.bulk_tag([first.id, second.id, 999], "bulk") == 2
        assert (await store.get_note(first.id)).tags == ["bulk"]
        assert (await store.get_note(second.id)).tags == ["bulk"]
        assert len(await store.list_notes(tag="bulk")) == 2

    async def test_bulk_tag_skips_full_notes(self, store):
        full_tags = [f"t{i}" for i in range(20)]
        full = await make(store, tags=full_tags)
        has_it = await make(store, tags=[f"t{i}" for i in range(19)] + ["x"])
        empty = await make(store)
        assert await store.bulk_tag([full.id, has_it.id, empty.id], "x") == 2
        assert (await store.get_note(full.id)).tags == full_tags
        assert (await store.get_note(empty.id)).tags == ["x"]


class TestHealth:
    async def test_health_check(self, store):
        assert await store.health_check() == {"status": "ok", "db": store.backend_name}
