"""
Shared test fixtures and configuration for pytest.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from listing_sync.core.exceptions import StoreApiError
from listing_sync.core.types import LocaleAction, LocaleActionType, StoreId
from listing_sync.snapshot.models import StoreSnapshot, build_locale_detail
from listing_sync.storage.sqlite_repository import SqliteRepository
from listing_sync.storefronts.base import StorefrontGateway


logger = logging.getLogger(__name__)


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# ============================================================================
# Fakes
# ============================================================================

class FakeGateway(StorefrontGateway):
    """
    In-memory storefront gateway.

    Holds locale -> fields and records every write. Locales listed in
    `fail_locales` raise StoreApiError on write.
    """

    def __init__(self, store: StoreId, listings: Optional[Dict[str, Dict[str, str]]] = None):
        self.store = store
        self.listings: Dict[str, Dict[str, str]] = {k: dict(v) for k, v in (listings or {}).items()}
        self.calls: List[tuple] = []
        self.fail_locales = set()
        self.fail_fetch = False

    def fetch_snapshot(self, app) -> StoreSnapshot:
        self.calls.append(("fetch", app.id))
        if self.fail_fetch:
            raise StoreApiError("fetch failed", store=self.store.value, status_code=500)
        details = {
            locale: build_locale_detail(self.store, locale, fields)
            for locale, fields in self.listings.items()
        }
        return StoreSnapshot(store=self.store, app_ref=str(app.id), details=details)

    def _check(self, locale: str) -> None:
        if locale in self.fail_locales:
            raise StoreApiError(f"write rejected for {locale}", store=self.store.value, status_code=409)

    def add_locale(self, app, locale: str, fields: Dict[str, str]) -> None:
        self.calls.append(("add", locale, dict(fields)))
        self._check(locale)
        self.listings[locale] = dict(fields)

    def update_locale(self, app, locale: str, fields: Dict[str, str]) -> None:
        self.calls.append(("update", locale, dict(fields)))
        self._check(locale)
        self.listings.setdefault(locale, {}).update(fields)

    def remove_locale(self, app, locale: str) -> None:
        self.calls.append(("remove", locale))
        self._check(locale)
        self.listings.pop(locale, None)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def repo():
    """In-memory SQLite repository."""
    repository = SqliteRepository(":memory:")
    yield repository
    repository.close()


@pytest.fixture
def app(repo):
    """A registered app with both store identifiers."""
    return repo.create_app("Acme", asc_app_id="123456", android_package_name="com.acme.app")


@pytest.fixture
def app_store_gateway():
    return FakeGateway(StoreId.APP_STORE, {
        "en-US": {
            "appName": "Acme",
            "subtitle": "Do things",
            "description": "Acme does things.",
            "keywords": "acme,things",
            "whatsNew": "Bug fixes",
        },
    })


@pytest.fixture
def play_store_gateway():
    return FakeGateway(StoreId.PLAY_STORE, {
        "en-US": {
            "title": "Acme",
            "shortDescription": "Do things",
            "fullDescription": "Acme does things.",
        },
    })


@pytest.fixture
def gateways(app_store_gateway, play_store_gateway):
    return {StoreId.APP_STORE: app_store_gateway, StoreId.PLAY_STORE: play_store_gateway}


@pytest.fixture
def make_gateway():
    """Factory for FakeGateway instances."""
    return FakeGateway
