"""
Storefront field rules.

Each storefront declares its listing fields with a maximum length in a unit
(characters, or UTF-8 bytes for App Store keywords), whether the field is
required to save a locale and whether it is required to publish.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.types import LengthUnit, StoreId


@dataclass(frozen=True)
class FieldRule:
    """
    Length and requirement rule for one listing field.

    Attributes:
        max_length: Maximum length in `unit`
        unit: chars or bytes
        min_length: Minimum length in `unit`, when the store enforces one
        required_for_save: Mandatory to create a locale
        required_for_publish: Mandatory before the store accepts a release
        notes: Short human-readable guidance
    """
    max_length: int
    unit: LengthUnit = LengthUnit.CHARS
    min_length: Optional[int] = None
    required_for_save: bool = False
    required_for_publish: bool = False
    notes: str = ""


@dataclass(frozen=True)
class ScreenshotRule:
    min_count: int
    notes: str = ""


@dataclass(frozen=True)
class StoreRules:
    """Field rules and presentation metadata for one storefront."""
    store: StoreId
    display_name: str
    locale_load_hint: str
    title_field: str
    fields: Dict[str, FieldRule] = field(default_factory=dict)
    screenshots: Optional[ScreenshotRule] = None


STORE_RULES: Dict[StoreId, StoreRules] = {
    StoreId.APP_STORE: StoreRules(
        store=StoreId.APP_STORE,
        display_name="App Store",
        locale_load_hint="normal",
        title_field="appName",
        fields={
            "appName": FieldRule(
                max_length=30,
                min_length=2,
                required_for_save=True,
                required_for_publish=True,
                notes="Name shown on the product page.",
            ),
            "subtitle": FieldRule(max_length=30, notes="Optional short summary below the name."),
            "promotionalText": FieldRule(
                max_length=170,
                notes="Can be updated without a new version.",
            ),
            "keywords": FieldRule(
                max_length=100,
                unit=LengthUnit.BYTES,
                required_for_save=True,
                required_for_publish=True,
                notes="Comma-separated search terms, limited in UTF-8 bytes.",
            ),
            "description": FieldRule(
                max_length=4000,
                required_for_save=True,
                required_for_publish=True,
            ),
            "whatsNew": FieldRule(
                max_length=4000,
                required_for_publish=True,
                notes="Release notes; required when publishing an update.",
            ),
        },
        screenshots=ScreenshotRule(min_count=1, notes="At least one screenshot per required device size."),
    ),
    StoreId.PLAY_STORE: StoreRules(
        store=StoreId.PLAY_STORE,
        display_name="Google Play",
        locale_load_hint="high",
        title_field="title",
        fields={
            "title": FieldRule(
                max_length=30,
                required_for_save=True,
                required_for_publish=True,
            ),
            "shortDescription": FieldRule(
                max_length=80,
                required_for_save=True,
                required_for_publish=True,
            ),
            "fullDescription": FieldRule(
                max_length=4000,
                required_for_save=True,
                required_for_publish=True,
            ),
        },
        screenshots=ScreenshotRule(min_count=2, notes="At least two phone screenshots."),
    ),
}


# Canonical field -> (storefront resource, payload key)
STORE_FIELD_KEYS: Dict[StoreId, Dict[str, Tuple[str, str]]] = {
    StoreId.APP_STORE: {
        "appName": ("appInfoLocalizations", "name"),
        "subtitle": ("appInfoLocalizations", "subtitle"),
        "privacyPolicyUrl": ("appInfoLocalizations", "privacyPolicyUrl"),
        "description": ("appStoreVersionLocalizations", "description"),
        "keywords": ("appStoreVersionLocalizations", "keywords"),
        "promotionalText": ("appStoreVersionLocalizations", "promotionalText"),
        "whatsNew": ("appStoreVersionLocalizations", "whatsNew"),
        "supportUrl": ("appStoreVersionLocalizations", "supportUrl"),
        "marketingUrl": ("appStoreVersionLocalizations", "marketingUrl"),
    },
    StoreId.PLAY_STORE: {
        "title": ("listings", "title"),
        "shortDescription": ("listings", "shortDescription"),
        "fullDescription": ("listings", "fullDescription"),
    },
}


def get_rules(store: StoreId) -> StoreRules:
    return STORE_RULES[StoreId(store)]


def get_field_rule(store: StoreId, field_name: str) -> Optional[FieldRule]:
    return get_rules(store).fields.get(field_name)


def translatable_fields(store: StoreId) -> List[str]:
    """Listing text fields in declaration order."""
    return list(get_rules(store).fields.keys())


def mandatory_fields(store: StoreId) -> List[str]:
    """Fields required to save a locale."""
    return [name for name, rule in get_rules(store).fields.items() if rule.required_for_save]


def title_field(store: StoreId) -> str:
    return get_rules(store).title_field


def measure_length(value: Optional[str], unit: LengthUnit) -> int:
    """Length of `value` in the given unit."""
    if not value:
        return 0
    if LengthUnit(unit) is LengthUnit.BYTES:
        return len(value.encode("utf-8"))
    return len(value)


def measure_field(store: StoreId, field_name: str, value: Optional[str]) -> int:
    """Length of a field value in that field's declared unit."""
    rule = get_field_rule(store, field_name)
    return measure_length(value, rule.unit if rule else LengthUnit.CHARS)


def truncate_to_budget(value: str, max_length: int, unit: LengthUnit) -> str:
    """
    Cut `value` to at most `max_length` units.

    Byte truncation never splits a multi-byte character.
    """
    if measure_length(value, unit) <= max_length:
        return value
    if LengthUnit(unit) is LengthUnit.BYTES:
        return value.encode("utf-8")[:max_length].decode("utf-8", errors="ignore")
    return value[:max_length]


def fits_budget(store: StoreId, field_name: str, value: Optional[str]) -> bool:
    rule = get_field_rule(store, field_name)
    if rule is None:
        return True
    return measure_length(value, rule.unit) <= rule.max_length


@dataclass(frozen=True)
class NamingIssue:
    level: str
    locale: str
    message: str


@dataclass(frozen=True)
class NamingRow:
    """Per-locale naming values checked for consistency."""
    locale: str
    app_store_name: Optional[str] = None
    play_store_title: Optional[str] = None
    app_store_keywords: Optional[str] = None
    ios_bundle_display_name: Optional[str] = None


def _check_length(label: str, value: str, rule: FieldRule, locale: str, issues: List[NamingIssue]) -> None:
    length = measure_length(value, rule.unit)
    if length > rule.max_length:
        issues.append(
            NamingIssue("error", locale, f"{label} exceeds max length ({length}/{rule.max_length}).")
        )


def validate_naming_consistency(rows: Iterable[NamingRow]) -> List[NamingIssue]:
    """
    Check app names, titles and keywords against their store limits.

    Also warns when the iOS bundle display name drifts from the App Store name.
    """
    issues: List[NamingIssue] = []
    name_rule = STORE_RULES[StoreId.APP_STORE].fields["appName"]
    title_rule = STORE_RULES[StoreId.PLAY_STORE].fields["title"]
    keyword_rule = STORE_RULES[StoreId.APP_STORE].fields["keywords"]

    for row in rows:
        if row.app_store_name:
            _check_length("App Store name", row.app_store_name, name_rule, row.locale, issues)
        if row.play_store_title:
            _check_length("Play title", row.play_store_title, title_rule, row.locale, issues)
        if row.app_store_keywords:
            size = measure_length(row.app_store_keywords, keyword_rule.unit)
            if size > keyword_rule.max_length:
                issues.append(NamingIssue(
                    "error",
                    row.locale,
                    f"App Store keywords exceeds byte limit ({size}/{keyword_rule.max_length}).",
                ))
        if row.app_store_name and row.ios_bundle_display_name:
            if row.app_store_name.strip() != row.ios_bundle_display_name.strip():
                issues.append(NamingIssue(
                    "warning",
                    row.locale,
                    "iOS bundle display name differs from App Store name.",
                ))
    return issues


def render_info_plist_strings(app_name: str) -> str:
    """Render InfoPlist.strings lines for a localized app name."""
    escaped = app_name.replace("\\", "\\\\").replace('"', '\\"')
    return "\n".join([
        f'"CFBundleDisplayName" = "{escaped}";',
        f'"CFBundleName" = "{escaped}";',
    ])
