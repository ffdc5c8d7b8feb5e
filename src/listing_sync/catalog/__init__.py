"""
Locale catalog and storefront field rules.
"""

from .locales import (
    LOCALE_ALIASES,
    LOCALE_CATALOG,
    addable_locales,
    all_store_locales,
    build_locale_matrix,
    canonicalize,
    is_supported,
    map_locale_between,
    supported_locales,
    to_store_native,
)
from .store_rules import (
    STORE_FIELD_KEYS,
    STORE_RULES,
    FieldRule,
    fits_budget,
    get_field_rule,
    get_rules,
    mandatory_fields,
    measure_field,
    measure_length,
    title_field,
    translatable_fields,
    truncate_to_budget,
)

__all__ = [
    "FieldRule",
    "LOCALE_ALIASES",
    "LOCALE_CATALOG",
    "STORE_FIELD_KEYS",
    "STORE_RULES",
    "addable_locales",
    "all_store_locales",
    "build_locale_matrix",
    "canonicalize",
    "fits_budget",
    "get_field_rule",
    "get_rules",
    "is_supported",
    "map_locale_between",
    "mandatory_fields",
    "measure_field",
    "measure_length",
    "supported_locales",
    "title_field",
    "to_store_native",
    "translatable_fields",
    "truncate_to_budget",
]
