"""
Organization and membership API endpoints
"""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, field_validator

from pilotage.api.deps import ORGANIZATION_SESSION_KEY, get_organizations_store
from pilotage.application.organizations import OrganizationsStore
from pilotage.domain.organization import ASSIGNABLE_ROLES, ROLE_MEMBER


router = APIRouter(prefix="/api/v1/organizations", tags=["organizations"])


# === Request/Response models ===

class OrganizationRequest(BaseModel):
    name: str
    description: str | None = None


class UpdateOrganizationRequest(BaseModel):
    name: str | None = None
    description: str | None = None


class SelectOrganizationRequest(BaseModel):
    organization_id: str


class InviteMemberRequest(BaseModel):
    email: str
    role: str = ROLE_MEMBER

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in ASSIGNABLE_ROLES:
            raise ValueError(f"Rôle invalide : {v}")
        return v


class UpdateRoleRequest(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in ASSIGNABLE_ROLES:
            raise ValueError(f"Rôle invalide : {v}")
        return v


class OrganizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    owner_id: str


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    organization_id: str
    user_id: str
    role: str
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None


# === Endpoints ===

@router.get("/")
def list_organizations(store: OrganizationsStore = Depends(get_organizations_store)):
    """Organisations de l'utilisateur et organisation courante"""
    current = store.current_organization
    return {
        "organizations": [OrganizationResponse.model_validate(o).model_dump() for o in store.organizations],
        "current_organization_id": current.id if current else None,
    }


@router.post("/", response_model=OrganizationResponse)
def create_organization(
    request: Request,
    req: OrganizationRequest,
    store: OrganizationsStore = Depends(get_organizations_store),
):
    """Créer une organisation ; elle devient l'organisation courante"""
    organization = store.create_organization(req.name, req.description)
    request.session[ORGANIZATION_SESSION_KEY] = organization.id
    return OrganizationResponse.model_validate(organization)


@router.put("/current", response_model=OrganizationResponse)
def select_organization(
    request: Request,
    req: SelectOrganizationRequest,
    store: OrganizationsStore = Depends(get_organizations_store),
):
    """Changer d'organisation courante"""
    organization = store.set_current_organization(req.organization_id)
    request.session[ORGANIZATION_SESSION_KEY] = organization.id
    return OrganizationResponse.model_validate(organization)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
def update_organization(
    organization_id: str,
    req: UpdateOrganizationRequest,
    store: OrganizationsStore = Depends(get_organizations_store),
):
    organization = store.update_organization(organization_id, name=req.name, description=req.description)
    return OrganizationResponse.model_validate(organization)


@router.delete("/{organization_id}")
def delete_organization(
    request: Request,
    organization_id: str,
    store: OrganizationsStore = Depends(get_organizations_store),
):
    """Supprimer une organisation ; la première restante devient courante"""
    store.delete_organization(organization_id)
    if store.current_organization is not None:
        request.session[ORGANIZATION_SESSION_KEY] = store.current_organization.id
    else:
        request.session.pop(ORGANIZATION_SESSION_KEY, None)
    return {"status": "deleted"}


@router.get("/{organization_id}/members", response_model=list[MemberResponse])
def list_members(
    organization_id: str,
    store: OrganizationsStore = Depends(get_organizations_store),
):
    return [MemberResponse.model_validate(m) for m in store.fetch_members(organization_id)]


@router.post("/{organization_id}/members", response_model=MemberResponse)
def invite_member(
    organization_id: str,
    req: InviteMemberRequest,
    store: OrganizationsStore = Depends(get_organizations_store),
):
    """Ajouter un utilisateur existant (recherché par email)"""
    return MemberResponse.model_validate(store.invite_member(organization_id, req.email, req.role))


@router.patch("/members/{member_id}")
def update_member_role(
    member_id: str,
    req: UpdateRoleRequest,
    store: OrganizationsStore = Depends(get_organizations_store),
):
    store.update_member_role(member_id, req.role)
    return {"status": "updated"}


@router.delete("/members/{member_id}")
def remove_member(
    member_id: str,
    store: OrganizationsStore = Depends(get_organizations_store),
):
    store.remove_member(member_id)
    return {"status": "deleted"}
