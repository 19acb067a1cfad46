"""
Events store - calendar events owned by or involving the user
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, List, Sequence

from pilotage.application.cache import EntityCache
from pilotage.domain.event import EventRecord
from pilotage.infrastructure.db.models import CalendarEventModel
from pilotage.infrastructure.remote.gateway import RemoteGateway

logger = logging.getLogger(__name__)

EVENT_FIELDS = ("title", "description", "start_at", "end_at", "participants")


class EventValidationError(ValueError):
    """Erreur de validation d'événement"""
    pass


def _check_period(start_at: datetime, end_at: datetime) -> None:
    if end_at < start_at:
        raise EventValidationError("La fin de l'événement doit être postérieure à son début")


class EventsStore:
    """Cached calendar events, ordered by start"""

    def __init__(self, gateway: RemoteGateway, user_id: str | None):
        self.gateway = gateway
        self.user_id = user_id
        self._events: EntityCache[EventRecord] = EntityCache()
        self.loading = False
        self.error: str | None = None

    @property
    def events(self) -> List[EventRecord]:
        return self._events.items

    def _sort(self) -> None:
        self._events.replace_all(sorted(self.events, key=lambda e: e.start_at))

    def _is_visible(self, event: EventRecord) -> bool:
        return event.user_id == self.user_id or self.user_id in event.participants

    def load(self) -> List[EventRecord]:
        self.loading = True
        self.error = None
        try:
            rows = self.gateway.select(CalendarEventModel, order_by=(CalendarEventModel.start_at.asc(),))
            self._events.replace_all(
                e for e in (EventRecord.from_row(r) for r in rows) if self._is_visible(e)
            )
        except Exception as exc:
            self.error = str(exc)
            raise
        finally:
            self.loading = False
        return self.events

    reload = load

    def create(
        self,
        title: str,
        start_at: datetime,
        end_at: datetime,
        description: str | None = None,
        participants: Sequence[str] = (),
    ) -> EventRecord:
        if not self.user_id:
            raise EventValidationError("Utilisateur non connecté")
        title = (title or "").strip()
        if not title:
            raise EventValidationError("Le titre de l'événement ne peut pas être vide")
        _check_period(start_at, end_at)

        row = self.gateway.insert(
            CalendarEventModel,
            title=title,
            description=description,
            start_at=start_at,
            end_at=end_at,
            participants=list(participants),
            user_id=self.user_id,
        )
        event = EventRecord.from_row(row)
        self._events.upsert(event)
        self._sort()
        return event

    def update(self, event_id: str, **changes: Any) -> EventRecord:
        unknown = set(changes) - set(EVENT_FIELDS)
        if unknown:
            raise EventValidationError(f"Champs inconnus : {', '.join(sorted(unknown))}")
        if "title" in changes:
            changes["title"] = (changes["title"] or "").strip()
            if not changes["title"]:
                raise EventValidationError("Le titre de l'événement ne peut pas être vide")
        if "participants" in changes:
            changes["participants"] = list(changes["participants"] or [])

        with self._events.optimistic() as cache:
            current = cache.get(event_id)
            if current is not None:
                patched = replace(current, **changes)
                _check_period(patched.start_at, patched.end_at)
                cache.upsert(patched)
            row = self.gateway.update(CalendarEventModel, event_id, **changes)
            event = EventRecord.from_row(row)
            cache.upsert(event)
        self._sort()
        return event

    def remove(self, event_id: str) -> None:
        with self._events.optimistic() as cache:
            cache.discard(event_id)
            self.gateway.delete(CalendarEventModel, event_id)
