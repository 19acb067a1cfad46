"""
Calendar event API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from pilotage.api.deps import get_events_store
from pilotage.application.events import EventsStore


router = APIRouter(prefix="/api/v1/events", tags=["events"])


class CreateEventRequest(BaseModel):
    title: str
    start_at: datetime
    end_at: datetime
    description: str | None = None
    participants: list[str] = Field(default_factory=list)


class UpdateEventRequest(BaseModel):
    title: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    description: str | None = None
    participants: list[str] | None = None


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    start_at: datetime
    end_at: datetime
    description: str | None = None
    participants: list[str] = []
    user_id: str | None = None


@router.get("/", response_model=list[EventResponse])
def list_events(store: EventsStore = Depends(get_events_store)):
    """Événements triés par date de début"""
    return [EventResponse.model_validate(e) for e in store.events]


@router.post("/", response_model=EventResponse)
def create_event(req: CreateEventRequest, store: EventsStore = Depends(get_events_store)):
    return EventResponse.model_validate(store.create(**req.model_dump()))


@router.patch("/{event_id}", response_model=EventResponse)
def update_event(event_id: str, req: UpdateEventRequest, store: EventsStore = Depends(get_events_store)):
    changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None or k == "description"}
    return EventResponse.model_validate(store.update(event_id, **changes))


@router.delete("/{event_id}")
def delete_event(event_id: str, store: EventsStore = Depends(get_events_store)):
    store.remove(event_id)
    return {"status": "deleted"}
