"""
Storefront gateway interface.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Mapping, Optional, Sequence, TypeVar

from ..core.types import AppRecord, StoreId
from ..snapshot.models import StoreSnapshot


logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorefrontGateway(ABC):
    """
    Reads snapshots from and writes single locales to one storefront.

    Every write touches exactly one locale so callers can settle each
    independently.
    """

    store: StoreId

    @abstractmethod
    def fetch_snapshot(self, app: AppRecord) -> StoreSnapshot:
        """
        Fetch every locale's listing text in one pass.

        Raises:
            StoreApiError: If the primary listing read fails
        """
        pass

    @abstractmethod
    def add_locale(self, app: AppRecord, locale: str, fields: Mapping[str, str]) -> None:
        pass

    @abstractmethod
    def update_locale(self, app: AppRecord, locale: str, fields: Mapping[str, str]) -> None:
        pass

    @abstractmethod
    def remove_locale(self, app: AppRecord, locale: str) -> None:
        pass


def fetch_all_tolerant(
    keys: Sequence[str],
    fetch: Callable[[str], Optional[T]],
    max_workers: int = 8,
    label: str = "sub-fetch",
) -> Dict[str, Optional[T]]:
    """
    Run `fetch` for every key concurrently.

    A failed fetch yields None for its key and is logged; it never aborts
    the others.
    """
    results: Dict[str, Optional[T]] = {key: None for key in keys}
    if not keys:
        return results

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(keys)))) as executor:
        futures = {executor.submit(fetch, key): key for key in keys}
        for future, key in futures.items():
            try:
                results[key] = future.result()
            except Exception as e:
                logger.warning(f"{label} failed for {key}: {e}")
    return results


def split_by_resource(fields: Mapping[str, str], field_keys: Mapping[str, tuple]) -> Dict[str, Dict[str, str]]:
    """Group canonical field values into per-resource payload attributes."""
    grouped: Dict[str, Dict[str, str]] = {}
    for name, value in fields.items():
        mapping = field_keys.get(name)
        if mapping is None:
            logger.warning(f"Ignoring unknown listing field: {name}")
            continue
        resource, key = mapping
        grouped.setdefault(resource, {})[key] = value
    return grouped

