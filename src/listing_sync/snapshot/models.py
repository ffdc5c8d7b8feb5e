"""
Snapshot model.

A StoreSnapshot is the result of one remote fetch for one storefront. It is
never patched in place; the next fetch replaces it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ..catalog.locales import canonicalize
from ..catalog.store_rules import measure_field
from ..core.types import LocaleDetail, StoreId


def build_locale_detail(
    store: StoreId,
    locale: str,
    fields: Mapping[str, Optional[str]],
    screenshots: Optional[List[Dict[str, Any]]] = None,
    fetched_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> LocaleDetail:
    """
    Build an immutable LocaleDetail.

    The locale is canonicalized, None values are dropped and lengths are
    measured in each field's declared unit.
    """
    values = {name: value for name, value in fields.items() if value is not None}
    return LocaleDetail(
        store=StoreId(store),
        locale=canonicalize(locale),
        fields=values,
        lengths={name: measure_field(store, name, value) for name, value in values.items()},
        screenshots=screenshots,
        fetched_at=fetched_at or datetime.now(timezone.utc),
        metadata=dict(metadata or {}),
    )


@dataclass
class StoreSnapshot:
    """
    All locale details fetched from one storefront in one pass.

    Attributes:
        store: Storefront
        app_ref: App Store app id or Play package name
        details: Canonical locale -> LocaleDetail
        version_id: App Store version the localizations belong to
        version_string: Human version string, when known
        fetched_at: When the fetch completed
    """
    store: StoreId
    app_ref: str
    details: Dict[str, LocaleDetail] = field(default_factory=dict)
    version_id: Optional[str] = None
    version_string: Optional[str] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def locales(self) -> List[str]:
        return sorted(self.details.keys())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store": self.store.value,
            "app_ref": self.app_ref,
            "version_id": self.version_id,
            "version_string": self.version_string,
            "fetched_at": self.fetched_at.isoformat(),
            "locales": [self.details[code].to_dict() for code in self.locales],
        }
