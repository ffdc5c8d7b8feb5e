"""
App Store Connect gateway.

Listing text lives on two resources: the app-info localization (name,
subtitle) and the localization of the latest app store version
(description, keywords, promotional text, release notes).
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..catalog.locales import canonicalize, to_store_native
from ..catalog.store_rules import STORE_FIELD_KEYS
from ..core.exceptions import StoreApiError
from ..core.types import AppRecord, StoreId
from ..providers.app_store_client import AppStoreClient
from ..snapshot.models import StoreSnapshot, build_locale_detail
from .base import StorefrontGateway, fetch_all_tolerant, split_by_resource


logger = logging.getLogger(__name__)

VERSION_LOCALIZATION_FIELDS = [
    "locale", "description", "keywords", "promotionalText", "whatsNew", "supportUrl", "marketingUrl",
]
VERSION_LOCALIZATION_FIELDS_REDUCED = ["locale", "description", "keywords", "promotionalText", "whatsNew"]

APP_INFO_LOCALIZATION_FIELDS = ["locale", "name", "subtitle", "privacyPolicyUrl"]
APP_INFO_LOCALIZATION_FIELDS_REDUCED = ["locale", "name", "subtitle"]

VERSION_RESOURCE = "appStoreVersionLocalizations"
APP_INFO_RESOURCE = "appInfoLocalizations"


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def compare_version_strings(left: Optional[str], right: Optional[str]) -> Optional[int]:
    """
    Compare dotted numeric version strings.

    Returns:
        Positive if left is newer, negative if older, 0 if equal, None when
        either is not a dotted numeric version
    """
    pattern = re.compile(r"^\d+(\.\d+)*$")
    if not left or not right or not pattern.match(left.strip()) or not pattern.match(right.strip()):
        return None
    a = [int(part) for part in left.strip().split(".")]
    b = [int(part) for part in right.strip().split(".")]
    width = max(len(a), len(b))
    a += [0] * (width - len(a))
    b += [0] * (width - len(b))
    return (a > b) - (a < b)


def pick_latest_version(versions: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Newest createdDate wins; version strings break the tie when dates are missing."""
    latest = versions[0]
    for candidate in versions[1:]:
        latest_date = _parse_date((latest.get("attributes") or {}).get("createdDate"))
        candidate_date = _parse_date((candidate.get("attributes") or {}).get("createdDate"))
        if candidate_date is not None and (latest_date is None or candidate_date > latest_date):
            latest = candidate
            continue
        comparison = compare_version_strings(
            (candidate.get("attributes") or {}).get("versionString"),
            (latest.get("attributes") or {}).get("versionString"),
        )
        if comparison is not None and comparison > 0:
            latest = candidate
    return latest


def template_url_to_real(template_url: str, width: int, height: int) -> str:
    return template_url.replace("{w}", str(width)).replace("{h}", str(height)).replace("{f}", "png")


class AppStoreGateway(StorefrontGateway):
    """Snapshot reads and per-locale writes against App Store Connect."""

    store = StoreId.APP_STORE

    def __init__(self, client: AppStoreClient, max_workers: int = 8):
        self.client = client
        self.max_workers = max_workers

    @staticmethod
    def _require_app_id(app: AppRecord) -> str:
        if not app.asc_app_id:
            raise StoreApiError("App Store app id is missing on the app record", store="app_store")
        return app.asc_app_id

    def resolve_latest_version(self, asc_app_id: str) -> Tuple[str, Optional[str]]:
        payload = self.client.get(
            f"/v1/apps/{asc_app_id}/appStoreVersions",
            {
                "fields[appStoreVersions]": ["versionString", "createdDate", "appVersionState", "platform"],
                "limit": 200,
            },
        )
        versions = payload.get("data") or []
        if not versions:
            raise StoreApiError("No App Store versions found for this app.", store="app_store")
        latest = pick_latest_version(versions)
        version_string = ((latest.get("attributes") or {}).get("versionString") or "").strip() or None
        return str(latest["id"]), version_string

    def resolve_app_info_id(self, asc_app_id: str) -> Optional[str]:
        payload = self.client.get(f"/v1/apps/{asc_app_id}/appInfos", {"limit": 10})
        rows = payload.get("data") or []
        return str(rows[0]["id"]) if rows else None

    def _get_with_reduced_fields(self, path: str, resource: str, full: List[str], reduced: List[str]) -> List[dict]:
        try:
            payload = self.client.get(path, {f"fields[{resource}]": full, "limit": 200})
        except StoreApiError as e:
            logger.warning(f"Full field read of {resource} failed, retrying with reduced fields: {e}")
            payload = self.client.get(path, {f"fields[{resource}]": reduced, "limit": 200})
        return [row for row in (payload.get("data") or []) if (row.get("attributes") or {}).get("locale")]

    def _fetch_screenshots(self, localization_id: str) -> Optional[List[Dict[str, Any]]]:
        payload = self.client.get(
            f"/v1/appStoreVersionLocalizations/{localization_id}/appScreenshotSets",
            {
                "fields[appScreenshotSets]": ["screenshotDisplayType"],
                "include": ["appScreenshots"],
                "fields[appScreenshots]": ["imageAsset", "fileName"],
                "limit": 200,
            },
        )
        included = {item.get("id"): item for item in payload.get("included") or []}
        groups = []
        for screenshot_set in payload.get("data") or []:
            display_type = (screenshot_set.get("attributes") or {}).get("screenshotDisplayType")
            if not display_type:
                continue
            refs = ((screenshot_set.get("relationships") or {}).get("appScreenshots") or {}).get("data") or []
            images = []
            for ref in refs:
                asset = ((included.get(ref.get("id")) or {}).get("attributes") or {}).get("imageAsset") or {}
                if asset.get("templateUrl") and asset.get("width") and asset.get("height"):
                    images.append({
                        "url": template_url_to_real(asset["templateUrl"], asset["width"], asset["height"]),
                        "width": asset["width"],
                        "height": asset["height"],
                    })
            if images:
                groups.append({"display_type": display_type, "images": images})
        return groups or None

    def fetch_snapshot(self, app: AppRecord) -> StoreSnapshot:
        asc_app_id = self._require_app_id(app)
        version_id, version_string = self.resolve_latest_version(asc_app_id)

        version_rows = self._get_with_reduced_fields(
            f"/v1/appStoreVersions/{version_id}/appStoreVersionLocalizations",
            VERSION_RESOURCE,
            VERSION_LOCALIZATION_FIELDS,
            VERSION_LOCALIZATION_FIELDS_REDUCED,
        )
        screenshots = fetch_all_tolerant(
            [row["id"] for row in version_rows],
            self._fetch_screenshots,
            max_workers=self.max_workers,
            label="App Store screenshot fetch",
        )

        app_info_id = self.resolve_app_info_id(asc_app_id)
        info_rows: List[dict] = []
        if app_info_id:
            info_rows = self._get_with_reduced_fields(
                f"/v1/appInfos/{app_info_id}/appInfoLocalizations",
                APP_INFO_RESOURCE,
                APP_INFO_LOCALIZATION_FIELDS,
                APP_INFO_LOCALIZATION_FIELDS_REDUCED,
            )

        merged: Dict[str, Dict[str, Any]] = {}
        for row in version_rows:
            attrs = row["attributes"]
            locale = canonicalize(attrs["locale"])
            entry = merged.setdefault(locale, {"fields": {}, "metadata": {}, "screenshots": None})
            for name, (resource, key) in STORE_FIELD_KEYS[StoreId.APP_STORE].items():
                if resource == VERSION_RESOURCE and attrs.get(key) is not None:
                    entry["fields"][name] = attrs[key]
            entry["metadata"]["version_localization_id"] = row["id"]
            entry["screenshots"] = screenshots.get(row["id"])

        for row in info_rows:
            attrs = row["attributes"]
            locale = canonicalize(attrs["locale"])
            entry = merged.setdefault(locale, {"fields": {}, "metadata": {}, "screenshots": None})
            for name, (resource, key) in STORE_FIELD_KEYS[StoreId.APP_STORE].items():
                if resource == APP_INFO_RESOURCE and attrs.get(key) is not None:
                    entry["fields"][name] = attrs[key]
            entry["metadata"]["app_info_localization_id"] = row["id"]

        snapshot = StoreSnapshot(
            store=self.store,
            app_ref=asc_app_id,
            version_id=version_id,
            version_string=version_string,
        )
        for locale, entry in merged.items():
            snapshot.details[locale] = build_locale_detail(
                self.store,
                locale,
                entry["fields"],
                screenshots=entry["screenshots"],
                fetched_at=snapshot.fetched_at,
                metadata={"version_id": version_id, "app_info_id": app_info_id, **entry["metadata"]},
            )

        logger.info(
            f"Fetched App Store snapshot for {asc_app_id} "
            f"(version {version_string or version_id}): {len(snapshot.details)} locales"
        )
        return snapshot

    # Writes

    def _find_localization(self, path: str, resource: str, native: str) -> Optional[str]:
        payload = self.client.get(path, {f"fields[{resource}]": ["locale"], "limit": 200})
        for row in payload.get("data") or []:
            if (row.get("attributes") or {}).get("locale") == native:
                return str(row["id"])
        return None

    def _write_resource(
        self,
        resource: str,
        parent_type: str,
        parent_id: str,
        list_path: str,
        native: str,
        attributes: Dict[str, str],
        create: bool,
    ) -> None:
        # A new version localization is always created; anything else patches an
        # existing record when one is present
        existing_id = None
        if not (create and resource == VERSION_RESOURCE):
            existing_id = self._find_localization(list_path, resource, native)

        if existing_id:
            self.client.patch(
                f"/v1/{resource}/{existing_id}",
                {"data": {"type": resource, "id": existing_id, "attributes": attributes}},
            )
            return

        relationship = "appStoreVersion" if resource == VERSION_RESOURCE else "appInfo"
        self.client.post(
            f"/v1/{resource}",
            {
                "data": {
                    "type": resource,
                    "attributes": {"locale": native, **attributes},
                    "relationships": {relationship: {"data": {"type": parent_type, "id": parent_id}}},
                }
            },
        )

    def _write_locale(self, app: AppRecord, locale: str, fields: Mapping[str, str], create: bool) -> None:
        asc_app_id = self._require_app_id(app)
        native = to_store_native(locale, self.store)
        grouped = split_by_resource(fields, STORE_FIELD_KEYS[self.store])
        version_id, _ = self.resolve_latest_version(asc_app_id)

        # Version localization first: it is the record that makes the locale exist
        if create or VERSION_RESOURCE in grouped:
            self._write_resource(
                VERSION_RESOURCE,
                "appStoreVersions",
                version_id,
                f"/v1/appStoreVersions/{version_id}/appStoreVersionLocalizations",
                native,
                grouped.get(VERSION_RESOURCE, {}),
                create,
            )

        if APP_INFO_RESOURCE in grouped:
            app_info_id = self.resolve_app_info_id(asc_app_id)
            if not app_info_id:
                raise StoreApiError("No app info found for this app.", store="app_store")
            self._write_resource(
                APP_INFO_RESOURCE,
                "appInfos",
                app_info_id,
                f"/v1/appInfos/{app_info_id}/appInfoLocalizations",
                native,
                grouped[APP_INFO_RESOURCE],
                create,
            )

    def add_locale(self, app: AppRecord, locale: str, fields: Mapping[str, str]) -> None:
        self._write_locale(app, locale, fields, create=True)
        logger.info(f"Added App Store locale {locale}")

    def update_locale(self, app: AppRecord, locale: str, fields: Mapping[str, str]) -> None:
        self._write_locale(app, locale, fields, create=False)
        logger.info(f"Updated App Store locale {locale}: {', '.join(sorted(fields))}")

    def remove_locale(self, app: AppRecord, locale: str) -> None:
        asc_app_id = self._require_app_id(app)
        native = to_store_native(locale, self.store)
        version_id, _ = self.resolve_latest_version(asc_app_id)

        version_loc_id = self._find_localization(
            f"/v1/appStoreVersions/{version_id}/appStoreVersionLocalizations", VERSION_RESOURCE, native
        )
        if version_loc_id is None:
            raise StoreApiError(f"App Store locale {locale} not found on the latest version", store="app_store")
        self.client.delete(f"/v1/{VERSION_RESOURCE}/{version_loc_id}")

        app_info_id = self.resolve_app_info_id(asc_app_id)
        if app_info_id:
            info_loc_id = self._find_localization(
                f"/v1/appInfos/{app_info_id}/appInfoLocalizations", APP_INFO_RESOURCE, native
            )
            if info_loc_id:
                self.client.delete(f"/v1/{APP_INFO_RESOURCE}/{info_loc_id}")
        logger.info(f"Removed App Store locale {locale}")
