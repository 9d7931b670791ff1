"""
Tests for study notes: validation, visibility, ownership and sharing.
"""

import asyncio
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from devdash.notes import (
    CONFIRM_DELETE_NOTE,
    LOCAL_USER,
    Note,
    NotesService,
    NoteValidationError,
    filter_notes,
)
from devdash.storage.local_backend import LocalBackend

ALICE = {"id": "alice", "email": "alice@example.com"}
BOB = {"id": "bob", "email": "bob@example.com"}


async def direct_io(fn, *args, **kwargs):
    return fn(*args, **kwargs)


@pytest.fixture
def backend(tmp_path):
    return LocalBackend(tmp_path)


def service_for(backend, user):
    return NotesService(backend, user, io_bound=direct_io)


class TestAddNote:

    def test_add_note_is_owned_and_private(self, backend):
        note = service_for(backend, ALICE).add_note("useEffect", "runs after render", "react")

        assert note.user_id == "alice"
        assert note.is_shared is False
        assert note.category == "react"

    def test_anonymous_note_has_no_owner(self, backend):
        note = service_for(backend, None).add_note("t", "c")
        assert note.user_id is None

    @pytest.mark.parametrize("title,content", [("", "c"), ("t", ""), (None, "c")])
    def test_missing_fields_are_rejected(self, backend, title, content):
        with pytest.raises(NoteValidationError, match="Please enter a title and content"):
            service_for(backend, ALICE).add_note(title, content)

    def test_unknown_category_is_rejected(self, backend):
        with pytest.raises(NoteValidationError):
            service_for(backend, ALICE).add_note("t", "c", "cooking")


class TestVisibility:

    def test_user_sees_own_and_shared(self, backend):
        alice = service_for(backend, ALICE)
        bob = service_for(backend, BOB)
        alice.add_note("alice private", "x")
        bob.add_note("bob private", "x")
        shared = bob.add_note("bob shared", "x")
        bob.toggle_share(shared)

        titles = sorted(n.title for n in alice.fetch_notes())
        assert titles == ["alice private", "bob shared"]

    def test_anonymous_sees_shared_only(self, backend):
        alice = service_for(backend, ALICE)
        alice.add_note("private", "x")
        shared = alice.add_note("public", "x")
        alice.toggle_share(shared)

        assert [n.title for n in service_for(backend, None).fetch_notes()] == ["public"]

    def test_local_user_sees_own_notes(self, backend):
        local = service_for(backend, LOCAL_USER)
        local.add_note("offline note", "x")
        assert [n.title for n in local.fetch_notes()] == ["offline note"]


class TestOwnership:

    def test_owner_can_delete_after_confirmation(self, backend):
        alice = service_for(backend, ALICE)
        note = alice.add_note("t", "c")
        prompts = []

        def confirm(message):
            prompts.append(message)
            return True

        assert asyncio.run(alice.delete_note(note, confirm))

        assert alice.fetch_notes() == []
        assert prompts == [CONFIRM_DELETE_NOTE]

    def test_declined_delete_keeps_note(self, backend):
        alice = service_for(backend, ALICE)
        note = alice.add_note("t", "c")

        assert asyncio.run(alice.delete_note(note, lambda message: False)) is False
        assert len(alice.fetch_notes()) == 1

    def test_async_confirm(self, backend):
        alice = service_for(backend, ALICE)
        note = alice.add_note("t", "c")

        async def confirm(message):
            return True

        assert asyncio.run(alice.delete_note(note, confirm))

    def test_non_owner_cannot_delete(self, backend):
        note = service_for(backend, ALICE).add_note("t", "c")
        bob = service_for(backend, BOB)

        assert bob.can_manage(note) is False
        with pytest.raises(PermissionError):
            asyncio.run(bob.delete_note(note, lambda message: True))

    def test_anonymous_cannot_manage(self, backend):
        note = service_for(backend, None).add_note("t", "c")
        assert service_for(backend, None).can_manage(note) is False

    def test_non_owner_cannot_share(self, backend):
        note = service_for(backend, ALICE).add_note("t", "c")
        with pytest.raises(PermissionError):
            service_for(backend, BOB).toggle_share(note)


class TestSharing:

    def test_share_then_read_by_token(self, backend):
        alice = service_for(backend, ALICE)
        note = alice.toggle_share(alice.add_note("Grid tips", "use gap", "css"))

        assert note.is_shared
        assert NotesService.share_path(note) == f"/notes/shared/{note.share_token}"

        shared = service_for(backend, None).get_shared_note(note.share_token)
        assert shared.title == "Grid tips"

    def test_unshare_keeps_token_and_hides_note(self, backend):
        alice = service_for(backend, ALICE)
        note = alice.toggle_share(alice.add_note("t", "c"))
        token = note.share_token

        note = alice.toggle_share(note)

        assert note.is_shared is False
        assert note.share_token == token
        assert NotesService.share_path(note) is None
        assert alice.get_shared_note(token) is None

        # Re-sharing revives the same link
        assert alice.toggle_share(note).share_token == token

    def test_unknown_token(self, backend):
        assert service_for(backend, None).get_shared_note("nope") is None


class TestFilter:

    @pytest.fixture
    def notes(self):
        return [
            Note(id="1", title="Flexbox", content="align-items", category="css"),
            Note(id="2", title="Hooks", content="useMemo caches", category="react"),
            Note(id="3", title="Hydration error", content="mismatch", category="error"),
        ]

    def test_blank_query_returns_all(self, notes):
        assert filter_notes(notes, "") == notes
        assert filter_notes(notes, "   ") == notes

    def test_matches_title_content_and_category(self, notes):
        assert [n.id for n in filter_notes(notes, "flex")] == ["1"]
        assert [n.id for n in filter_notes(notes, "USEMEMO")] == ["2"]
        assert [n.id for n in filter_notes(notes, "error")] == ["3"]

    def test_no_match(self, notes):
        assert filter_notes(notes, "graphql") == []
