"""
Repository interface for persisted apps, locale lists, locale details and
sync jobs.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ..core.types import AppRecord, LocaleDetail, StoreId, StoreScope, SyncJob, SyncJobLog


class Repository(ABC):
    """
    Abstract base class for listing-sync persistence.

    Locale lists and locale details are replaced as a whole per
    (app, store); job status transitions are validated on write.
    """

    @abstractmethod
    def create_app(
        self,
        name: str,
        source_locale: str = "en-US",
        asc_app_id: Optional[str] = None,
        android_package_name: Optional[str] = None,
    ) -> AppRecord:
        pass

    @abstractmethod
    def get_app(self, app_id: int) -> Optional[AppRecord]:
        pass

    @abstractmethod
    def list_apps(self) -> List[AppRecord]:
        pass

    @abstractmethod
    def list_locales(self, app_id: int, store: StoreId) -> List[str]:
        """
        List the locales configured for a store, sorted.

        Args:
            app_id: App id
            store: Storefront

        Returns:
            Canonical locale codes
        """
        pass

    @abstractmethod
    def replace_locales(self, app_id: int, store: StoreId, locales: Iterable[str]) -> None:
        """Replace the full locale list for (app, store)."""
        pass

    @abstractmethod
    def list_locale_details(self, app_id: int, store: StoreId) -> Dict[str, LocaleDetail]:
        pass

    @abstractmethod
    def get_locale_detail(self, app_id: int, store: StoreId, locale: str) -> Optional[LocaleDetail]:
        pass

    @abstractmethod
    def replace_locale_details(self, app_id: int, store: StoreId, details: Iterable[LocaleDetail]) -> None:
        """Replace every stored detail for (app, store) with `details`."""
        pass

    @abstractmethod
    def create_job(self, app_id: int, store_scope: StoreScope, payload: Optional[Dict[str, Any]] = None) -> SyncJob:
        pass

    @abstractmethod
    def get_job(self, job_id: int) -> Optional[SyncJob]:
        pass

    @abstractmethod
    def list_jobs(self, app_id: int, limit: int = 50) -> List[SyncJob]:
        """List an app's jobs, newest first."""
        pass

    @abstractmethod
    def mark_running(self, job_id: int) -> SyncJob:
        """
        Move a queued job to running.

        Raises:
            JobStateError: If the job is missing or not queued
        """
        pass

    @abstractmethod
    def mark_succeeded(self, job_id: int, summary: Dict[str, Any]) -> SyncJob:
        pass

    @abstractmethod
    def mark_failed(self, job_id: int, error: str) -> SyncJob:
        pass

    @abstractmethod
    def append_log(self, job_id: int, level: str, message: str) -> None:
        pass

    @abstractmethod
    def list_logs(self, job_id: int) -> List[SyncJobLog]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass
