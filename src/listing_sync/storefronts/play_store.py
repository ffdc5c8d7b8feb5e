"""
Google Play gateway.

Reads happen in a throwaway edit; each locale write runs in its own edit so
one failing locale never blocks the others.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..catalog.locales import canonicalize, to_store_native
from ..catalog.store_rules import STORE_FIELD_KEYS
from ..core.exceptions import StoreApiError
from ..core.types import AppRecord, StoreId
from ..providers.play_store_client import PlayStoreClient
from ..snapshot.models import StoreSnapshot, build_locale_detail
from .base import StorefrontGateway, fetch_all_tolerant, split_by_resource


logger = logging.getLogger(__name__)

SCREENSHOT_IMAGE_TYPE = "phoneScreenshots"


class PlayStoreGateway(StorefrontGateway):
    """Snapshot reads and per-locale writes against the Play edits API."""

    store = StoreId.PLAY_STORE

    def __init__(self, client: PlayStoreClient, max_workers: int = 8):
        self.client = client
        self.max_workers = max_workers

    @staticmethod
    def _require_package(app: AppRecord) -> str:
        if not app.android_package_name:
            raise StoreApiError("Android package name is missing on the app record", store="play_store")
        return app.android_package_name

    def _listings_path(self, package_name: str, edit_id: str, language: Optional[str] = None) -> str:
        path = f"{self.client.edits_path(package_name, edit_id)}/listings"
        if language:
            path = f"{path}/{language}"
        return path

    def _fetch_screenshots(self, package_name: str, edit_id: str, language: str) -> Optional[List[Dict[str, Any]]]:
        payload = self.client.get(
            f"{self._listings_path(package_name, edit_id, language)}/{SCREENSHOT_IMAGE_TYPE}"
        )
        images = [
            {"url": image["url"], "id": image.get("id")}
            for image in payload.get("images") or []
            if image.get("url")
        ]
        if not images:
            return None
        return [{"display_type": SCREENSHOT_IMAGE_TYPE, "images": images}]

    def fetch_snapshot(self, app: AppRecord) -> StoreSnapshot:
        package_name = self._require_package(app)
        snapshot = StoreSnapshot(store=self.store, app_ref=package_name)

        with self.client.edit(package_name, commit=False) as edit_id:
            payload = self.client.get(self._listings_path(package_name, edit_id))
            listings = [row for row in payload.get("listings") or [] if row.get("language")]

            screenshots = fetch_all_tolerant(
                [row["language"] for row in listings],
                lambda language: self._fetch_screenshots(package_name, edit_id, language),
                max_workers=self.max_workers,
                label="Play screenshot fetch",
            )

        for row in listings:
            fields = {
                name: row.get(key)
                for name, (_, key) in STORE_FIELD_KEYS[self.store].items()
            }
            locale = canonicalize(row["language"])
            snapshot.details[locale] = build_locale_detail(
                self.store,
                locale,
                fields,
                screenshots=screenshots.get(row["language"]),
                fetched_at=snapshot.fetched_at,
                metadata={"language": row["language"]},
            )

        logger.info(f"Fetched Play snapshot for {package_name}: {len(snapshot.details)} locales")
        return snapshot

    def _listing_body(self, native: str, fields: Mapping[str, str]) -> Dict[str, str]:
        attributes = split_by_resource(fields, STORE_FIELD_KEYS[self.store]).get("listings", {})
        return {"language": native, **attributes}

    def add_locale(self, app: AppRecord, locale: str, fields: Mapping[str, str]) -> None:
        package_name = self._require_package(app)
        native = to_store_native(locale, self.store)
        with self.client.edit(package_name) as edit_id:
            self.client.put(self._listings_path(package_name, edit_id, native), self._listing_body(native, fields))
        logger.info(f"Added Play locale {native}")

    def update_locale(self, app: AppRecord, locale: str, fields: Mapping[str, str]) -> None:
        package_name = self._require_package(app)
        native = to_store_native(locale, self.store)
        with self.client.edit(package_name) as edit_id:
            self.client.patch(self._listings_path(package_name, edit_id, native), self._listing_body(native, fields))
        logger.info(f"Updated Play locale {native}: {', '.join(sorted(fields))}")

    def remove_locale(self, app: AppRecord, locale: str) -> None:
        package_name = self._require_package(app)
        native = to_store_native(locale, self.store)
        with self.client.edit(package_name) as edit_id:
            self.client.delete(self._listings_path(package_name, edit_id, native))
        logger.info(f"Removed Play locale {native}")
