"""
Organization domain records

The organization is the tenancy boundary of the backend: categories,
transactions, notes and shared tasks all belong to exactly one.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional


ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER)
ASSIGNABLE_ROLES = (ROLE_ADMIN, ROLE_MEMBER)


@dataclass
class OrganizationRecord:
    id: str
    name: str
    owner_id: str
    description: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "OrganizationRecord":
        return cls(id=row.id, name=row.name, owner_id=row.owner_id, description=row.description)


@dataclass
class MemberRecord:
    """Organization member as returned by get_organization_members"""
    organization_id: str
    user_id: str
    role: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_mapping(cls, organization_id: str, data: Mapping[str, Any]) -> "MemberRecord":
        return cls(
            id=data.get("id"),
            organization_id=organization_id,
            user_id=str(data["user_id"]),
            role=data.get("role") or ROLE_MEMBER,
            email=data.get("email"),
            full_name=data.get("full_name"),
            avatar_url=data.get("avatar_url"),
        )
