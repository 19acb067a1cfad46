"""
Shared transaction-visibility filter (all / common / personal).

One FilterStore is shared by every AccountingStore of a client: the value
is persisted in the client's key/value storage (the session in the web
layer) and each change is pushed to subscribers in registration order.
"""
import logging
from typing import Callable, List, MutableMapping, Optional

from pilotage.domain.accounting import FILTER_ALL, TRANSACTION_FILTERS

logger = logging.getLogger(__name__)

FILTER_STORAGE_KEY = "accounting-filter"

Subscriber = Callable[[str], None]


class FilterValidationError(ValueError):
    """Filtre de transactions inconnu"""
    pass


def validate_filter(value: str) -> str:
    if value not in TRANSACTION_FILTERS:
        raise FilterValidationError(
            f"Filtre inconnu : {value}. Valeurs possibles : {', '.join(TRANSACTION_FILTERS)}"
        )
    return value


class FilterStore:
    """
    Subscription-based holder of the current transaction filter

    Usage:
        filters = FilterStore(request.session)
        unsubscribe = filters.subscribe(lambda value: ...)
        filters.set("personal")
    """

    def __init__(self, storage: Optional[MutableMapping] = None):
        self._storage = storage if storage is not None else {}
        self._subscribers: List[Subscriber] = []

    @property
    def value(self) -> str:
        """Persisted filter; unknown or missing values fall back to "all"."""
        stored = self._storage.get(FILTER_STORAGE_KEY)
        return stored if stored in TRANSACTION_FILTERS else FILTER_ALL

    def set(self, value: str) -> None:
        validate_filter(value)
        self._storage[FILTER_STORAGE_KEY] = value
        logger.debug("Transaction filter set to %s (%d subscriber(s))", value, len(self._subscribers))
        for subscriber in list(self._subscribers):
            subscriber(value)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback; returns the function that unregisters it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe
