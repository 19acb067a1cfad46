"""
Notes store - notes created by or shared with the user, and their sharing
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import or_, select

from pilotage.application.cache import EntityCache
from pilotage.domain.note import (
    DEFAULT_NOTE_TITLE,
    CollaboratorRecord,
    MemberSummary,
    NoteRecord,
)
from pilotage.infrastructure.db.models import NoteModel, NoteShare, OrganizationMember
from pilotage.infrastructure.remote.gateway import RemoteGateway

logger = logging.getLogger(__name__)


class NoteValidationError(ValueError):
    """Erreur de validation de note"""
    pass


class NotesStore:
    """
    Cached notes of one user, most recently updated first

    Usage:
        store = NotesStore(gateway, user_id, organization_id)
        store.load_notes()
        note = store.create_note("Courses", "")
        store.share_note(note.id, [member_id], can_edit=False)
    """

    def __init__(self, gateway: RemoteGateway, user_id: str | None, organization_id: str | None = None):
        self.gateway = gateway
        self.user_id = user_id
        self.organization_id = organization_id
        self._notes: EntityCache[NoteRecord] = EntityCache()
        self.organization_members: List[MemberSummary] = []
        self.loading = False

    @property
    def notes(self) -> List[NoteRecord]:
        return self._notes.items

    def get(self, note_id: str) -> Optional[NoteRecord]:
        return self._notes.get(note_id)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _collaborators(self, note_id: str) -> List[CollaboratorRecord]:
        rows = self.gateway.call_rpc("get_note_collaborators", note_id_param=note_id)
        return [CollaboratorRecord.from_mapping(r) for r in rows]

    def _to_record(self, row: NoteModel, collaborators: List[CollaboratorRecord]) -> NoteRecord:
        is_creator = row.created_by == self.user_id
        can_edit = is_creator
        if not is_creator:
            shares = self.gateway.select(
                NoteShare, NoteShare.note_id == row.id, NoteShare.user_id == self.user_id
            )
            can_edit = any(s.can_edit for s in shares)
        return NoteRecord(
            id=row.id,
            title=row.title,
            content=row.content,
            created_by=row.created_by,
            organization_id=row.organization_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            collaborators=collaborators,
            can_edit=can_edit,
            is_creator=is_creator,
        )

    def load_notes(self) -> List[NoteRecord]:
        if not self.user_id:
            return []

        shared_with_me = select(NoteShare.note_id).where(NoteShare.user_id == self.user_id)
        self.loading = True
        try:
            rows = self.gateway.select(
                NoteModel,
                or_(NoteModel.created_by == self.user_id, NoteModel.id.in_(shared_with_me)),
                order_by=(NoteModel.updated_at.desc(),),
            )
            self._notes.replace_all(self._to_record(r, self._collaborators(r.id)) for r in rows)
        finally:
            self.loading = False
        return self.notes

    def _organization_id(self) -> Optional[str]:
        if self.organization_id:
            return self.organization_id
        memberships = self.gateway.select(
            OrganizationMember, OrganizationMember.user_id == self.user_id
        )
        return memberships[0].organization_id if memberships else None

    def load_organization_members(self) -> List[MemberSummary]:
        """Members of the user's organization the notes can be shared with (self excluded)."""
        if not self.user_id:
            return []
        organization_id = self._organization_id()
        if organization_id is None:
            self.organization_members = []
            return self.organization_members

        rows = self.gateway.call_rpc("get_organization_members", org_id=organization_id)
        self.organization_members = [
            MemberSummary(
                user_id=str(r["user_id"]),
                full_name=r.get("full_name") or "",
                email=r.get("email") or "",
                avatar_url=r.get("avatar_url"),
            )
            for r in rows
            if str(r["user_id"]) != self.user_id
        ]
        return self.organization_members

    def refresh_note_collaborators(self, note_id: str) -> Optional[NoteRecord]:
        note = self._notes.get(note_id)
        if note is None:
            return None
        note = replace(note, collaborators=self._collaborators(note_id))
        self._notes.upsert(note)
        return note

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def create_note(self, title: str | None = None, content: str | None = None) -> NoteRecord:
        if not self.user_id:
            raise NoteValidationError("Utilisateur non connecté")
        organization_id = self._organization_id()
        if organization_id is None:
            raise NoteValidationError("Aucune organisation disponible pour enregistrer la note")

        row = self.gateway.insert(
            NoteModel,
            title=(title or "").strip() or DEFAULT_NOTE_TITLE,
            content=content or "",
            created_by=self.user_id,
            organization_id=organization_id,
        )
        note = self._to_record(row, collaborators=[])
        self._notes.replace_all([note, *self.notes])
        logger.info("Note %s created by %s", note.id, self.user_id)
        return note

    def save_note(self, note_id: str, title: str | None = None, content: str | None = None) -> NoteRecord:
        current = self._notes.get(note_id)
        if current is not None and not current.can_edit:
            raise NoteValidationError("Vous n'avez pas le droit de modifier cette note")

        changes = {}
        if title is not None:
            changes["title"] = title.strip() or DEFAULT_NOTE_TITLE
        if content is not None:
            changes["content"] = content
        if not changes:
            raise NoteValidationError("Aucune modification à enregistrer")

        with self._notes.optimistic() as cache:
            if current is not None:
                cache.upsert(replace(current, **changes))
            row = self.gateway.update(
                NoteModel, note_id, updated_at=datetime.now(timezone.utc), **changes
            )
            collaborators = current.collaborators if current is not None else self._collaborators(note_id)
            note = self._to_record(row, collaborators)
            cache.upsert(note)
        return note

    def delete_note(self, note_id: str) -> None:
        current = self._notes.get(note_id)
        if current is not None and not current.is_creator:
            raise NoteValidationError("Seul le créateur peut supprimer la note")

        with self._notes.optimistic() as cache:
            cache.discard(note_id)
            self.gateway.delete(NoteModel, note_id)

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    def share_note(self, note_id: str, user_ids: Sequence[str], can_edit: bool = True) -> NoteRecord:
        """
        Share a note with organization members

        Raises:
            NoteValidationError: the user is not the creator, or every
                selected user already has access
        """
        if not self.user_id:
            raise NoteValidationError("Utilisateur non connecté")
        note = self._notes.get(note_id)
        if note is None or note.created_by != self.user_id:
            raise NoteValidationError("Seul le créateur peut partager la note")

        existing = {s.user_id for s in self.gateway.select(NoteShare, NoteShare.note_id == note_id)}
        new_user_ids = [u for u in dict.fromkeys(user_ids) if u not in existing and u != note.created_by]
        if not new_user_ids:
            raise NoteValidationError("Tous les utilisateurs sélectionnés ont déjà accès à cette note")

        self.gateway.insert_many(
            NoteShare,
            [
                {"note_id": note_id, "user_id": u, "can_edit": can_edit, "shared_by": self.user_id}
                for u in new_user_ids
            ],
        )
        logger.info("Note %s shared with %d user(s)", note_id, len(new_user_ids))
        return self.refresh_note_collaborators(note_id)

    def unshare_note(self, note_id: str, user_id: str) -> Optional[NoteRecord]:
        removed = self.gateway.delete_where(
            NoteShare, NoteShare.note_id == note_id, NoteShare.user_id == user_id
        )
        if not removed:
            logger.warning("Note %s was not shared with %s", note_id, user_id)
        return self.refresh_note_collaborators(note_id)
