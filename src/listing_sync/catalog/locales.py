"""
Locale catalog.

Canonical locale codes follow the App Store dialect. Google Play uses a few
legacy or region-qualified codes for the same languages; those are mapped
through a single alias table in both directions.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

from ..core.types import StoreId


logger = logging.getLogger(__name__)


# Store-native code -> canonical code
LOCALE_ALIASES: Dict[str, str] = {
    "iw-IL": "he",
    "zh-CN": "zh-Hans",
    "zh-TW": "zh-Hant",
    "ms-MY": "ms",
}

CANONICAL_TO_PLAY: Dict[str, str] = {canonical: native for native, canonical in LOCALE_ALIASES.items()}

APP_STORE_LOCALES = (
    "ar", "ca", "cs-CZ", "da-DK", "de-DE", "el-GR", "en-AU", "en-CA", "en-GB",
    "en-US", "es-ES", "es-MX", "fi-FI", "fr-CA", "fr-FR", "he", "hi-IN", "hr",
    "hu-HU", "id", "it-IT", "ja-JP", "ko-KR", "ms", "nl-NL", "no-NO", "pl-PL",
    "pt-BR", "pt-PT", "ro", "ru-RU", "sk", "sv-SE", "th", "tr-TR", "uk", "vi",
    "zh-Hans", "zh-Hant",
)

PLAY_STORE_LOCALES = (
    "af", "sq", "am", "ar", "hy-AM", "az-AZ", "bn-BD", "eu-ES", "be", "bg",
    "my-MM", "ca", "zh-HK", "zh-CN", "zh-TW", "hr", "cs-CZ", "da-DK",
    "nl-NL", "en-AU", "en-CA", "en-US", "en-GB", "en-IN", "en-SG", "en-ZA",
    "et", "fil", "fi-FI", "fr-CA", "fr-FR", "gl-ES", "ka-GE", "de-DE",
    "el-GR", "gu", "iw-IL", "hi-IN", "hu-HU", "is-IS", "id", "it-IT", "ja-JP",
    "kn-IN", "kk", "km-KH", "ko-KR", "ky-KG", "lo-LA", "lv", "lt", "mk-MK",
    "ms-MY", "ml-IN", "mr-IN", "mn-MN", "ne-NP", "no-NO", "fa", "fa-AE",
    "fa-AF", "fa-IR", "pl-PL", "pt-BR", "pt-PT", "pa", "ro", "rm", "ru-RU",
    "sr", "si-LK", "sk", "sl", "es-419", "es-ES", "es-US", "sw", "sv-SE",
    "ta-IN", "te-IN", "th", "tr-TR", "uk", "ur", "vi",
)


def canonicalize(native: str) -> str:
    """
    Map a store-native locale code to its canonical code.

    Unknown codes pass through unchanged, so the function is idempotent.
    """
    code = (native or "").strip()
    return LOCALE_ALIASES.get(code, code)


def to_store_native(canonical: str, store: StoreId) -> str:
    """Map a canonical code to the code the given store expects."""
    code = canonicalize(canonical)
    if StoreId(store) is StoreId.PLAY_STORE:
        return CANONICAL_TO_PLAY.get(code, code)
    return code


_SUPPORTED: Dict[StoreId, FrozenSet[str]] = {
    StoreId.APP_STORE: frozenset(canonicalize(c) for c in APP_STORE_LOCALES),
    StoreId.PLAY_STORE: frozenset(canonicalize(c) for c in PLAY_STORE_LOCALES),
}


def supported_locales(store: StoreId) -> FrozenSet[str]:
    """Canonical codes the store accepts listings for."""
    return _SUPPORTED[StoreId(store)]


def is_supported(canonical: str, store: StoreId) -> bool:
    return canonicalize(canonical) in supported_locales(store)


def map_locale_between(canonical: str, target_store: StoreId) -> Optional[str]:
    """
    Return the target store's native code for a canonical locale.

    Returns None when the target store does not support the locale.
    """
    code = canonicalize(canonical)
    if code not in supported_locales(target_store):
        return None
    return to_store_native(code, target_store)


def all_store_locales() -> List[str]:
    """Sorted union of every locale either store supports."""
    return sorted(supported_locales(StoreId.APP_STORE) | supported_locales(StoreId.PLAY_STORE))


def addable_locales(store: StoreId, existing: Iterable[str]) -> List[str]:
    """Supported locales the store does not have a listing for yet."""
    present = {canonicalize(code) for code in existing}
    return sorted(supported_locales(store) - present)


@dataclass(frozen=True)
class LocaleCatalogEntry:
    """A canonical locale with its per-store support and native codes."""
    locale: str
    app_store_native: Optional[str]
    play_store_native: Optional[str]

    @property
    def app_store_supported(self) -> bool:
        return self.app_store_native is not None

    @property
    def play_store_supported(self) -> bool:
        return self.play_store_native is not None


LOCALE_CATALOG: List[LocaleCatalogEntry] = [
    LocaleCatalogEntry(
        locale=code,
        app_store_native=map_locale_between(code, StoreId.APP_STORE),
        play_store_native=map_locale_between(code, StoreId.PLAY_STORE),
    )
    for code in all_store_locales()
]


@dataclass(frozen=True)
class LocaleMatrixRow:
    """One row of the locale matrix."""
    locale: str
    app_store: bool
    play_store: bool
    app_store_supported: bool
    play_store_supported: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "locale": self.locale,
            "app_store": self.app_store,
            "play_store": self.play_store,
            "app_store_supported": self.app_store_supported,
            "play_store_supported": self.play_store_supported,
        }


def build_locale_matrix(
    app_store_locales: Iterable[str],
    play_store_locales: Iterable[str],
    known_locales: Optional[Iterable[str]] = None,
) -> List[LocaleMatrixRow]:
    """
    Build the locale matrix over the union of known and configured locales.

    Args:
        app_store_locales: Locales the App Store listing has (any dialect)
        play_store_locales: Locales the Play listing has (any dialect)
        known_locales: Base set of locales to show; defaults to every locale
            either store supports

    Returns:
        Rows sorted by canonical code
    """
    asc = {canonicalize(code) for code in app_store_locales if code}
    play = {canonicalize(code) for code in play_store_locales if code}
    known = all_store_locales() if known_locales is None else known_locales
    universe = {canonicalize(code) for code in known if code} | asc | play

    return [
        LocaleMatrixRow(
            locale=code,
            app_store=code in asc,
            play_store=code in play,
            app_store_supported=is_supported(code, StoreId.APP_STORE),
            play_store_supported=is_supported(code, StoreId.PLAY_STORE),
        )
        for code in sorted(universe)
    ]
