"""
Organizations store - the user's organizations, the current one and its members
"""
import logging
from typing import List, Optional

from pilotage.application.cache import EntityCache
from pilotage.domain.organization import (
    ASSIGNABLE_ROLES,
    ROLE_MEMBER,
    ROLE_OWNER,
    MemberRecord,
    OrganizationRecord,
)
from pilotage.infrastructure.db.models import Organization, OrganizationMember, Profile
from pilotage.infrastructure.remote.gateway import RemoteGateway

logger = logging.getLogger(__name__)


class OrganizationValidationError(ValueError):
    """Erreur de validation d'organisation"""
    pass


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise OrganizationValidationError("Le nom de l'organisation ne peut pas être vide")
    return name


class OrganizationsStore:
    """
    Cached organizations of one user

    The first organization (most recent) becomes current unless the client
    asked for another one it belongs to.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        user_id: str,
        preferred_organization_id: str | None = None,
    ):
        self.gateway = gateway
        self.user_id = user_id
        self.preferred_organization_id = preferred_organization_id
        self._organizations: EntityCache[OrganizationRecord] = EntityCache()
        self.current_organization: Optional[OrganizationRecord] = None
        self.members: List[MemberRecord] = []
        self.loading = False

    @property
    def organizations(self) -> List[OrganizationRecord]:
        return self._organizations.items

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def fetch_organizations(self) -> List[OrganizationRecord]:
        self.loading = True
        try:
            memberships = self.gateway.select(
                OrganizationMember, OrganizationMember.user_id == self.user_id
            )
            organization_ids = [m.organization_id for m in memberships]
            if not organization_ids:
                self._organizations.replace_all([])
                self.current_organization = None
                return []

            rows = self.gateway.select(
                Organization,
                Organization.id.in_(organization_ids),
                order_by=(Organization.created_at.desc(),),
            )
            self._organizations.replace_all(OrganizationRecord.from_row(r) for r in rows)
            self._select_default()
            return self.organizations
        finally:
            self.loading = False

    def _select_default(self) -> None:
        for candidate in (self.preferred_organization_id, getattr(self.current_organization, "id", None)):
            if candidate and candidate in self._organizations:
                self.current_organization = self._organizations.get(candidate)
                return
        organizations = self.organizations
        self.current_organization = organizations[0] if organizations else None

    def set_current_organization(self, organization_id: str) -> OrganizationRecord:
        organization = self._organizations.get(organization_id)
        if organization is None:
            raise OrganizationValidationError(f"Organisation {organization_id} introuvable")
        self.current_organization = organization
        self.preferred_organization_id = organization_id
        return organization

    def fetch_members(self, organization_id: str | None = None) -> List[MemberRecord]:
        """Members through get_organization_members, with their membership ids."""
        organization_id = organization_id or getattr(self.current_organization, "id", None)
        if organization_id is None:
            self.members = []
            return self.members

        rows = self.gateway.call_rpc("get_organization_members", org_id=organization_id)
        membership_ids = {
            m.user_id: m.id
            for m in self.gateway.select(
                OrganizationMember, OrganizationMember.organization_id == organization_id
            )
        }
        members = []
        for row in rows:
            member = MemberRecord.from_mapping(organization_id, row)
            member.id = member.id or membership_ids.get(member.user_id)
            members.append(member)
        self.members = members
        return members

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def create_organization(self, name: str, description: str | None = None) -> OrganizationRecord:
        """Create an organization owned by the user; it becomes current."""
        name = _clean_name(name)
        row = self.gateway.insert(Organization, name=name, description=description, owner_id=self.user_id)
        existing = self.gateway.select(
            OrganizationMember,
            OrganizationMember.organization_id == row.id,
            OrganizationMember.user_id == self.user_id,
        )
        if not existing:
            self.gateway.insert(
                OrganizationMember, organization_id=row.id, user_id=self.user_id, role=ROLE_OWNER
            )

        organization = OrganizationRecord.from_row(row)
        self._organizations.upsert(organization)
        self.current_organization = organization
        logger.info("Organization %s created by %s", organization.id, self.user_id)
        return organization

    def update_organization(
        self,
        organization_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> OrganizationRecord:
        changes = {}
        if name is not None:
            changes["name"] = _clean_name(name)
        if description is not None:
            changes["description"] = description
        if not changes:
            raise OrganizationValidationError("Aucune modification à enregistrer")

        with self._organizations.optimistic() as cache:
            current = cache.get(organization_id)
            if current is not None:
                cache.upsert(OrganizationRecord(
                    id=current.id,
                    name=changes.get("name", current.name),
                    owner_id=current.owner_id,
                    description=changes.get("description", current.description),
                ))
            row = self.gateway.update(Organization, organization_id, **changes)
            organization = OrganizationRecord.from_row(row)
            cache.upsert(organization)

        if self.current_organization and self.current_organization.id == organization_id:
            self.current_organization = organization
        return organization

    def delete_organization(self, organization_id: str) -> None:
        with self._organizations.optimistic() as cache:
            cache.discard(organization_id)
            self.gateway.delete(Organization, organization_id)

        if self.current_organization and self.current_organization.id == organization_id:
            remaining = self.organizations
            self.current_organization = remaining[0] if remaining else None

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def invite_member(self, organization_id: str, email: str, role: str = ROLE_MEMBER) -> MemberRecord:
        """Add an existing user (found by email) to the organization."""
        if role not in ASSIGNABLE_ROLES:
            raise OrganizationValidationError(f"Rôle invalide : {role}")

        profiles = self.gateway.select(Profile, Profile.email == email.strip().lower())
        if not profiles:
            raise OrganizationValidationError("Utilisateur non trouvé")
        profile = profiles[0]

        already = self.gateway.select(
            OrganizationMember,
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == profile.id,
        )
        if already:
            raise OrganizationValidationError("Cet utilisateur est déjà membre de l'organisation")

        row = self.gateway.insert(
            OrganizationMember, organization_id=organization_id, user_id=profile.id, role=role
        )
        if self.current_organization and self.current_organization.id == organization_id:
            self.fetch_members(organization_id)
        return MemberRecord(
            id=row.id,
            organization_id=organization_id,
            user_id=profile.id,
            role=role,
            email=profile.email,
            full_name=profile.full_name,
            avatar_url=profile.avatar_url,
        )

    def remove_member(self, member_id: str) -> None:
        self.gateway.delete(OrganizationMember, member_id)
        if self.current_organization:
            self.fetch_members(self.current_organization.id)

    def update_member_role(self, member_id: str, role: str) -> None:
        if role not in ASSIGNABLE_ROLES:
            raise OrganizationValidationError(f"Rôle invalide : {role}")
        self.gateway.update(OrganizationMember, member_id, role=role)
        if self.current_organization:
            self.fetch_members(self.current_organization.id)
