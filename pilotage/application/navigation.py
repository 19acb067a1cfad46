"""
Top-level page navigation kept in the client session
"""
from enum import Enum
from typing import MutableMapping, Optional

NAVIGATION_STORAGE_KEY = "current-page"


class Page(str, Enum):
    HOME = "home"
    ACCOUNTING = "accounting"
    ACCOUNTING_TABLE = "accounting-table"
    EVOLUTION = "evolution"
    DASHBOARD = "dashboard"


class NavigationError(ValueError):
    """Page inconnue"""
    pass


class Navigator:
    def __init__(self, storage: Optional[MutableMapping] = None):
        self._storage = storage if storage is not None else {}

    @property
    def current_page(self) -> Page:
        try:
            return Page(self._storage.get(NAVIGATION_STORAGE_KEY, Page.HOME.value))
        except ValueError:
            return Page.HOME

    def navigate_to(self, page: str) -> Page:
        try:
            target = Page(page)
        except ValueError:
            raise NavigationError(f"Page inconnue : {page}")
        self._storage[NAVIGATION_STORAGE_KEY] = target.value
        return target
