"""
FastAPI dependencies (DB session, current user, stores)

The session cookie is filled by the hosted auth front: it carries the
user id and the client-side state (current organization, transaction
filter, current page).
"""
import logging
from typing import Iterator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from pilotage.application.accounting import AccountingStore
from pilotage.application.events import EventsStore
from pilotage.application.filters import FilterStore
from pilotage.application.navigation import Navigator
from pilotage.application.notes import NotesStore
from pilotage.application.organizations import OrganizationsStore
from pilotage.application.tasks import TasksStore
from pilotage.infrastructure.db.session import get_db as _get_db
from pilotage.infrastructure.remote.gateway import RemoteGateway

logger = logging.getLogger(__name__)

ORGANIZATION_SESSION_KEY = "organization_id"

# Re-export get_db pour les routes
get_db = _get_db


def get_gateway(db: Session = Depends(get_db)) -> RemoteGateway:
    return RemoteGateway(db)


def get_current_user_id(request: Request) -> str:
    """
    Utilisateur courant depuis la session

    Raises:
        HTTPException(401): session sans utilisateur
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Non authentifié"
        )
    return str(user_id)


def get_organizations_store(
    request: Request,
    gateway: RemoteGateway = Depends(get_gateway),
    user_id: str = Depends(get_current_user_id),
) -> OrganizationsStore:
    """Organizations of the user, current one restored from the session."""
    store = OrganizationsStore(
        gateway, user_id, preferred_organization_id=request.session.get(ORGANIZATION_SESSION_KEY)
    )
    store.fetch_organizations()
    if store.current_organization is not None:
        request.session[ORGANIZATION_SESSION_KEY] = store.current_organization.id
    else:
        request.session.pop(ORGANIZATION_SESSION_KEY, None)
    return store


def get_current_organization_id(
    organizations: OrganizationsStore = Depends(get_organizations_store),
) -> str | None:
    current = organizations.current_organization
    return current.id if current else None


def get_filter_store(request: Request) -> FilterStore:
    return FilterStore(request.session)


def get_accounting_store(
    gateway: RemoteGateway = Depends(get_gateway),
    user_id: str = Depends(get_current_user_id),
    organization_id: str | None = Depends(get_current_organization_id),
    filter_store: FilterStore = Depends(get_filter_store),
) -> Iterator[AccountingStore]:
    """Accounting store loaded for the current organization and filter."""
    store = AccountingStore(gateway, user_id, organization_id, filter_store)
    try:
        store.refetch()
        yield store
    finally:
        store.close()


def get_tasks_store(
    gateway: RemoteGateway = Depends(get_gateway),
    user_id: str = Depends(get_current_user_id),
    organization_id: str | None = Depends(get_current_organization_id),
) -> TasksStore:
    store = TasksStore(gateway, user_id, organization_id)
    store.fetch_tasks()
    return store


def get_notes_store(
    gateway: RemoteGateway = Depends(get_gateway),
    user_id: str = Depends(get_current_user_id),
    organization_id: str | None = Depends(get_current_organization_id),
) -> NotesStore:
    store = NotesStore(gateway, user_id, organization_id)
    store.load_notes()
    return store


def get_events_store(
    gateway: RemoteGateway = Depends(get_gateway),
    user_id: str = Depends(get_current_user_id),
) -> EventsStore:
    store = EventsStore(gateway, user_id)
    store.load()
    return store


def get_navigator(request: Request) -> Navigator:
    return Navigator(request.session)
