"""
Snapshot sync.

Fetches storefront snapshots concurrently and replaces the persisted locale
lists and details per store. One store failing never hides the other's
result.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..core.logging import CorrelationContext, log_with_context
from ..core.types import AppRecord, StoreId, StoreScope
from .models import StoreSnapshot


logger = logging.getLogger(__name__)


@dataclass
class StoreFetchOutcome:
    """Snapshot or error for one store."""
    store: StoreId
    snapshot: Optional[StoreSnapshot] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.snapshot is not None


@dataclass
class SnapshotSyncReport:
    """Per-store result of a snapshot sync."""
    app_id: int
    outcomes: Dict[StoreId, StoreFetchOutcome] = field(default_factory=dict)
    synced_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes.values())

    @property
    def errors(self) -> Dict[str, str]:
        return {store.value: o.error for store, o in self.outcomes.items() if o.error}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "app_id": self.app_id,
            "synced_at": self.synced_at.isoformat(),
            "stores": {
                store.value: {
                    "ok": outcome.ok,
                    "locales": outcome.snapshot.locales if outcome.snapshot else [],
                    "error": outcome.error,
                }
                for store, outcome in self.outcomes.items()
            },
        }


def fetch_snapshots(
    app: AppRecord,
    gateways: Mapping[StoreId, Any],
    stores: Iterable[StoreId],
) -> Dict[StoreId, StoreFetchOutcome]:
    """
    Fetch snapshots for the requested stores concurrently.

    Args:
        app: App record
        gateways: Store -> gateway with a `fetch_snapshot(app)` method
        stores: Stores to fetch

    Returns:
        Store -> outcome; failures carry the error text
    """
    requested: List[StoreId] = [StoreId(s) for s in stores]
    outcomes: Dict[StoreId, StoreFetchOutcome] = {}

    def fetch(store: StoreId) -> StoreSnapshot:
        gateway = gateways.get(store)
        if gateway is None:
            raise ValueError(f"No gateway configured for {store.value}")
        with CorrelationContext(app_id=app.id, store=store.value):
            return gateway.fetch_snapshot(app)

    with ThreadPoolExecutor(max_workers=max(1, len(requested))) as executor:
        futures = {store: executor.submit(fetch, store) for store in requested}
        for store, future in futures.items():
            try:
                outcomes[store] = StoreFetchOutcome(store=store, snapshot=future.result())
            except Exception as e:
                log_with_context(
                    logger, logging.WARNING, f"Snapshot fetch failed: {e}",
                    app_id=app.id, store=store.value,
                )
                outcomes[store] = StoreFetchOutcome(store=store, error=str(e))
    return outcomes


class SnapshotSyncService:
    """
    Pulls fresh snapshots and persists them.

    Example:
        >>> service = SnapshotSyncService(repo, {StoreId.APP_STORE: asc, StoreId.PLAY_STORE: play})
        >>> report = service.sync(app, StoreScope.BOTH)
        >>> report.errors
        {}
    """

    def __init__(self, repository, gateways: Mapping[StoreId, Any]):
        self.repository = repository
        self.gateways = dict(gateways)

    def sync(self, app: AppRecord, scope: StoreScope = StoreScope.BOTH) -> SnapshotSyncReport:
        report = SnapshotSyncReport(app_id=app.id)
        report.outcomes = fetch_snapshots(app, self.gateways, StoreScope(scope).stores())

        for store, outcome in report.outcomes.items():
            if not outcome.ok:
                continue
            snapshot = outcome.snapshot
            self.repository.replace_locales(app.id, store, snapshot.locales)
            self.repository.replace_locale_details(app.id, store, snapshot.details.values())
            logger.info(f"Synced {len(snapshot.locales)} {store.value} locales for app {app.id}")

        return report
