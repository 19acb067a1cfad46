"""
Tests for page navigation
"""
import pytest

from pilotage.application.navigation import NAVIGATION_STORAGE_KEY, NavigationError, Navigator, Page


def test_home_by_default():
    assert Navigator().current_page is Page.HOME


def test_navigation_is_persisted():
    storage = {}

    Navigator(storage).navigate_to("accounting-table")

    assert storage[NAVIGATION_STORAGE_KEY] == "accounting-table"
    assert Navigator(storage).current_page is Page.ACCOUNTING_TABLE


def test_unknown_page_rejected():
    navigator = Navigator()
    with pytest.raises(NavigationError, match="Page inconnue"):
        navigator.navigate_to("settings")
    assert navigator.current_page is Page.HOME


def test_corrupted_storage_falls_back_to_home():
    assert Navigator({NAVIGATION_STORAGE_KEY: "gone"}).current_page is Page.HOME
