"""
Tests for NotesStore: visibility, edit rights and sharing
"""
from datetime import datetime

import pytest

from pilotage.application.notes import NotesStore, NoteValidationError
from pilotage.infrastructure.db.models import NoteModel, NoteShare

from tests.conftest import OTHER_USER_ID, OUTSIDER_ID, USER_ID


@pytest.fixture
def store(gateway, organization):
    return NotesStore(gateway, USER_ID, organization.id)


@pytest.fixture
def notes(db_session, organization):
    """Alice's note, Bob's note shared read-only with Alice, and Bob's private note"""
    rows = {
        "mine": NoteModel(
            title="Courses", content="lait", created_by=USER_ID, organization_id=organization.id,
            updated_at=datetime(2024, 3, 1, 9, 0),
        ),
        "shared": NoteModel(
            title="Vacances", content="", created_by=OTHER_USER_ID, organization_id=organization.id,
            updated_at=datetime(2024, 3, 2, 9, 0),
        ),
        "private": NoteModel(
            title="Secret", content="", created_by=OTHER_USER_ID, organization_id=organization.id,
            updated_at=datetime(2024, 3, 3, 9, 0),
        ),
    }
    db_session.add_all(rows.values())
    db_session.flush()
    db_session.add(NoteShare(note_id=rows["shared"].id, user_id=USER_ID, can_edit=False, shared_by=OTHER_USER_ID))
    db_session.commit()
    return rows


class TestLoading:
    def test_own_and_shared_notes_most_recent_first(self, store, notes):
        loaded = store.load_notes()

        assert [n.title for n in loaded] == ["Vacances", "Courses"]

    def test_rights_depend_on_viewer(self, store, notes):
        store.load_notes()
        mine = store.get(notes["mine"].id)
        shared = store.get(notes["shared"].id)

        assert (mine.is_creator, mine.can_edit) == (True, True)
        assert (shared.is_creator, shared.can_edit) == (False, False)
        assert shared.is_shared is True
        assert mine.is_shared is False

    def test_members_exclude_current_user(self, store):
        members = store.load_organization_members()

        assert [(m.user_id, m.full_name) for m in members] == [(OTHER_USER_ID, "Bob Durand")]


class TestNotes:
    def test_create_with_default_title(self, store):
        note = store.create_note("   ")

        assert note.title == "Note sans titre"
        assert note.content == ""
        assert store.notes[0].id == note.id

    def test_create_falls_back_to_membership_organization(self, gateway, organization):
        store = NotesStore(gateway, USER_ID)

        note = store.create_note("Idées")

        assert note.organization_id == organization.id

    def test_create_without_any_organization(self, gateway, profiles):
        store = NotesStore(gateway, OUTSIDER_ID)

        with pytest.raises(NoteValidationError, match="Aucune organisation"):
            store.create_note("Idées")

    def test_save_note(self, store, notes):
        store.load_notes()

        saved = store.save_note(notes["mine"].id, content="lait, oeufs")

        assert saved.content == "lait, oeufs"
        assert saved.title == "Courses"
        assert store.get(notes["mine"].id).content == "lait, oeufs"

    def test_read_only_share_cannot_be_saved(self, store, notes):
        store.load_notes()

        with pytest.raises(NoteValidationError, match="pas le droit"):
            store.save_note(notes["shared"].id, content="plage")

    def test_only_creator_deletes(self, store, notes, db_session):
        store.load_notes()

        with pytest.raises(NoteValidationError, match="Seul le créateur"):
            store.delete_note(notes["shared"].id)

        store.delete_note(notes["mine"].id)
        assert [n.id for n in store.notes] == [notes["shared"].id]
        assert db_session.get(NoteModel, notes["mine"].id) is None


class TestSharing:
    def test_share_with_member(self, store, notes):
        store.load_notes()

        note = store.share_note(notes["mine"].id, [OTHER_USER_ID, OTHER_USER_ID], can_edit=False)

        assert note.is_shared
        bob = next(c for c in note.collaborators if c.user_id == OTHER_USER_ID)
        assert bob.can_edit is False
        assert bob.full_name == "Bob Durand"

    def test_share_twice_is_rejected(self, store, notes):
        store.load_notes()
        store.share_note(notes["mine"].id, [OTHER_USER_ID])

        with pytest.raises(NoteValidationError, match="déjà accès"):
            store.share_note(notes["mine"].id, [OTHER_USER_ID, USER_ID])

    def test_only_creator_shares(self, store, notes):
        store.load_notes()

        with pytest.raises(NoteValidationError, match="Seul le créateur"):
            store.share_note(notes["shared"].id, [OUTSIDER_ID])

    def test_unshare(self, store, notes, db_session):
        store.load_notes()
        store.share_note(notes["mine"].id, [OTHER_USER_ID])

        note = store.unshare_note(notes["mine"].id, OTHER_USER_ID)

        assert not note.is_shared
        assert db_session.query(NoteShare).filter_by(note_id=notes["mine"].id).count() == 0

    def test_unshare_unknown_share_is_harmless(self, store, notes):
        store.load_notes()

        note = store.unshare_note(notes["mine"].id, OUTSIDER_ID)

        assert [c.user_id for c in note.collaborators] == [USER_ID]
