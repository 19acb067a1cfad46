"""
Note and note sharing API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from pilotage.api.deps import get_notes_store
from pilotage.application.notes import NotesStore


router = APIRouter(prefix="/api/v1/notes", tags=["notes"])


# === Request/Response models ===

class CreateNoteRequest(BaseModel):
    title: str | None = None
    content: str | None = None


class SaveNoteRequest(BaseModel):
    title: str | None = None
    content: str | None = None


class ShareNoteRequest(BaseModel):
    user_ids: list[str]
    can_edit: bool = True


class CollaboratorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    full_name: str
    email: str
    avatar_url: str | None = None
    can_edit: bool
    is_creator: bool


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    created_by: str
    organization_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    collaborators: list[CollaboratorResponse] = []
    is_shared: bool
    can_edit: bool
    is_creator: bool


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    full_name: str
    email: str
    avatar_url: str | None = None


# === Endpoints ===

@router.get("/", response_model=list[NoteResponse])
def list_notes(store: NotesStore = Depends(get_notes_store)):
    """Notes créées par l'utilisateur ou partagées avec lui"""
    return [NoteResponse.model_validate(n) for n in store.notes]


@router.get("/members", response_model=list[MemberResponse])
def list_shareable_members(store: NotesStore = Depends(get_notes_store)):
    """Membres de l'organisation avec qui partager (hors soi-même)"""
    return [MemberResponse.model_validate(m) for m in store.load_organization_members()]


@router.post("/", response_model=NoteResponse)
def create_note(req: CreateNoteRequest, store: NotesStore = Depends(get_notes_store)):
    return NoteResponse.model_validate(store.create_note(req.title, req.content))


@router.patch("/{note_id}", response_model=NoteResponse)
def save_note(note_id: str, req: SaveNoteRequest, store: NotesStore = Depends(get_notes_store)):
    return NoteResponse.model_validate(store.save_note(note_id, req.title, req.content))


@router.delete("/{note_id}")
def delete_note(note_id: str, store: NotesStore = Depends(get_notes_store)):
    store.delete_note(note_id)
    return {"status": "deleted"}


@router.post("/{note_id}/shares", response_model=NoteResponse)
def share_note(note_id: str, req: ShareNoteRequest, store: NotesStore = Depends(get_notes_store)):
    """Partager une note (créateur uniquement)"""
    return NoteResponse.model_validate(store.share_note(note_id, req.user_ids, req.can_edit))


@router.delete("/{note_id}/shares/{user_id}", response_model=NoteResponse)
def unshare_note(note_id: str, user_id: str, store: NotesStore = Depends(get_notes_store)):
    note = store.unshare_note(note_id, user_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note introuvable")
    return NoteResponse.model_validate(note)
