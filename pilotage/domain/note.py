"""
Note domain records

A note belongs to its creator's organization and can be shared with other
members, each share granting read or edit rights.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional


DEFAULT_NOTE_TITLE = "Note sans titre"


@dataclass
class CollaboratorRecord:
    """Row of get_note_collaborators"""
    user_id: str
    full_name: str = ""
    email: str = ""
    avatar_url: Optional[str] = None
    can_edit: bool = False
    is_creator: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CollaboratorRecord":
        return cls(
            user_id=str(data["user_id"]),
            full_name=data.get("full_name") or "",
            email=data.get("email") or "",
            avatar_url=data.get("avatar_url"),
            can_edit=bool(data.get("can_edit")),
            is_creator=bool(data.get("is_creator")),
        )


@dataclass
class NoteRecord:
    """
    Note as seen by one viewer

    can_edit and is_creator depend on who is looking; is_shared is true as
    soon as someone besides the creator is a collaborator.
    """
    id: str
    title: str
    content: str
    created_by: str
    organization_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    collaborators: List[CollaboratorRecord] = field(default_factory=list)
    can_edit: bool = False
    is_creator: bool = False

    @property
    def is_shared(self) -> bool:
        return len(self.collaborators) > 1


@dataclass
class MemberSummary:
    """Organization member a note can be shared with"""
    user_id: str
    full_name: str = ""
    email: str = ""
    avatar_url: Optional[str] = None
