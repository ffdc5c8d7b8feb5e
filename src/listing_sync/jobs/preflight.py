"""
Preflight job execution.

Fetches the requested storefront snapshots and computes the per-store
locale workload. Nothing is written to the storefronts or the persisted
snapshots.
"""

import logging
from typing import Any, Callable, Dict, Mapping

from ..core.exceptions import ListingSyncError
from ..core.types import StoreId, SyncJob
from ..snapshot.sync import fetch_snapshots
from ..snapshot.workload import compute_workload


logger = logging.getLogger(__name__)

JobLog = Callable[[str, str], None]


class PreflightService:
    """
    Executes one sync job's preflight.

    Job payload options:
        include_remote: Fetch snapshots and compare against them (default True)
    """

    def __init__(self, repository, gateways: Mapping[StoreId, Any]):
        self.repository = repository
        self.gateways = dict(gateways)

    def execute(self, job: SyncJob, log: JobLog) -> Dict[str, Any]:
        """
        Run the preflight for a job.

        Args:
            job: The running job
            log: Callable(level, message) appending to the job's log

        Returns:
            Summary payload

        Raises:
            ListingSyncError: If the app is missing or every requested
                snapshot fetch failed
        """
        app = self.repository.get_app(job.app_id)
        if app is None:
            raise ListingSyncError(f"App {job.app_id} not found")

        stores = job.store_scope.stores()
        include_remote = bool(job.payload.get("include_remote", True))
        configured = {store: self.repository.list_locales(app.id, store) for store in stores}

        summary: Dict[str, Any] = {
            "store_scope": job.store_scope.value,
            "include_remote": include_remote,
            "snapshots": {},
            "errors": {},
        }

        remote: Dict[StoreId, list] = {}
        if include_remote:
            log("info", f"Fetching snapshots: {', '.join(s.value for s in stores)}")
            outcomes = fetch_snapshots(app, self.gateways, stores)
            for store, outcome in outcomes.items():
                if outcome.ok:
                    remote[store] = outcome.snapshot.locales
                    summary["snapshots"][store.value] = {
                        "locales": len(outcome.snapshot.locales),
                        "version": outcome.snapshot.version_string,
                        "fetched_at": outcome.snapshot.fetched_at.isoformat(),
                    }
                    log("info", f"{store.value} snapshot fetched: {len(outcome.snapshot.locales)} locales")
                else:
                    summary["errors"][store.value] = outcome.error
                    log("warn", f"{store.value} snapshot failed: {outcome.error}")

            if not remote:
                raise ListingSyncError(
                    "All snapshot fetches failed: "
                    + "; ".join(f"{store}: {error}" for store, error in summary["errors"].items())
                )

        summary["workload"] = compute_workload(configured, remote if include_remote else None)
        return summary
