"""
Diff engine.

Compares one store's locale details against another's (cross-store) or a
fresh remote snapshot against the persisted one (same store) and proposes
per-field changes.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..catalog.locales import canonicalize, map_locale_between
from ..catalog.store_rules import get_field_rule, get_rules, translatable_fields, truncate_to_budget
from ..core.types import (
    DiffEntry,
    DiffReport,
    FieldDiff,
    LocaleDetail,
    PendingFieldChange,
    SkippedLocale,
    StoreId,
)


logger = logging.getLogger(__name__)

# (source store, target store) -> [(source field, target field)]
FIELD_TRANSLATION: Dict[Tuple[StoreId, StoreId], List[Tuple[str, str]]] = {
    (StoreId.APP_STORE, StoreId.PLAY_STORE): [
        ("appName", "title"),
        ("subtitle", "shortDescription"),
        ("description", "fullDescription"),
    ],
    (StoreId.PLAY_STORE, StoreId.APP_STORE): [
        ("title", "appName"),
        ("shortDescription", "subtitle"),
        ("fullDescription", "description"),
    ],
}


def normalize(value: Optional[str]) -> str:
    """Trailing-whitespace normalization used for every comparison."""
    return (value or "").rstrip()


def bound_to_target(value: str, target_store: StoreId, target_field: str) -> str:
    """Truncate a candidate value to the target field's limit in its unit."""
    rule = get_field_rule(target_store, target_field)
    if rule is None:
        return value
    bounded = truncate_to_budget(value, rule.max_length, rule.unit)
    return normalize(bounded)


class DiffEngine:
    """
    Produces DiffReports from locale detail maps.

    Example:
        >>> engine = DiffEngine()
        >>> report = engine.diff_stores(StoreId.APP_STORE, asc_details, StoreId.PLAY_STORE, play_details)
        >>> [e.target_native_locale for e in report.entries]
        ['iw-IL', 'zh-CN']
    """

    def field_pairs(self, source_store: StoreId, target_store: StoreId) -> List[Tuple[str, str]]:
        key = (StoreId(source_store), StoreId(target_store))
        if key not in FIELD_TRANSLATION:
            raise ValueError(f"No field translation from {key[0].value} to {key[1].value}")
        return FIELD_TRANSLATION[key]

    def diff_locale(
        self,
        source: LocaleDetail,
        target_store: StoreId,
        target: Optional[LocaleDetail],
        is_new_locale: bool,
    ) -> Tuple[Optional[DiffEntry], Optional[SkippedLocale]]:
        """
        Diff one source locale against its counterpart in the target store.

        Returns:
            (entry, None) when something should be proposed, (None, skip)
            when the locale is skipped, (None, None) when already in sync
        """
        target_store = StoreId(target_store)
        target_rules = get_rules(target_store)

        native = map_locale_between(source.locale, target_store)
        if native is None:
            return None, SkippedLocale(
                source.locale,
                f"Locale {source.locale} is not supported by {target_rules.display_name}",
            )

        pairs = self.field_pairs(source.store, target_store)
        identity_field = pairs[0][0]
        if not normalize(source.value(identity_field)):
            return None, SkippedLocale(source.locale, f"Missing {identity_field} in source locale")

        diffs: List[FieldDiff] = []
        for source_field, target_field in pairs:
            candidate = normalize(source.value(source_field))
            if candidate:
                candidate = bound_to_target(candidate, target_store, target_field)
            current = target.value(target_field) if target else ""
            if candidate != normalize(current):
                diffs.append(FieldDiff(field=target_field, old_value=current, new_value=candidate))

        if not diffs and not is_new_locale:
            return None, None

        return DiffEntry(
            source_locale=source.locale,
            target_locale=canonicalize(native),
            target_native_locale=native,
            target_store=target_store,
            is_new_locale=is_new_locale,
            fields=diffs,
        ), None

    def diff_stores(
        self,
        source_store: StoreId,
        source_details: Mapping[str, LocaleDetail],
        target_store: StoreId,
        target_details: Mapping[str, LocaleDetail],
        target_locales: Optional[Iterable[str]] = None,
        locales: Optional[Iterable[str]] = None,
    ) -> DiffReport:
        """
        Diff every source locale against the target store.

        Args:
            source_store: Store the text is taken from
            source_details: Canonical locale -> detail in the source store
            target_store: Store the proposals are for
            target_details: Canonical locale -> detail in the target store
            target_locales: Locales the target store already has; defaults
                to the keys of `target_details`
            locales: Restrict the diff to these source locales

        Returns:
            DiffReport with entries and skip records, both sorted by locale
        """
        source_store = StoreId(source_store)
        target_store = StoreId(target_store)
        existing = {canonicalize(code) for code in (target_locales if target_locales is not None else target_details)}
        wanted = {canonicalize(code) for code in locales} if locales is not None else None

        report = DiffReport(source_store=source_store, target_store=target_store)
        for locale in sorted(source_details):
            if wanted is not None and locale not in wanted:
                continue
            source = source_details[locale]
            target = target_details.get(locale)
            entry, skipped = self.diff_locale(
                source,
                target_store,
                target,
                is_new_locale=locale not in existing,
            )
            if entry is not None:
                report.entries.append(entry)
            if skipped is not None:
                report.skipped.append(skipped)

        logger.info(
            f"Diff {source_store.value} -> {target_store.value}: "
            f"{len(report.entries)} entries, {len(report.skipped)} skipped"
        )
        return report

    def diff_snapshots(
        self,
        store: StoreId,
        baseline: Mapping[str, LocaleDetail],
        candidate: Mapping[str, LocaleDetail],
    ) -> DiffReport:
        """
        Compare a fresh snapshot (candidate) with a persisted one (baseline).

        Locales only present in the candidate are new; locales missing from
        the candidate are reported as skipped with a removal reason.
        """
        store = StoreId(store)
        fields = translatable_fields(store)
        report = DiffReport(source_store=store, target_store=store)

        for locale in sorted(set(baseline) | set(candidate)):
            fresh = candidate.get(locale)
            known = baseline.get(locale)
            if fresh is None:
                report.skipped.append(SkippedLocale(locale, "Locale no longer present remotely"))
                continue

            diffs = []
            for name in fields:
                old = known.value(name) if known else ""
                new = fresh.value(name)
                if normalize(old) != normalize(new):
                    diffs.append(FieldDiff(field=name, old_value=old, new_value=new))

            if diffs or known is None:
                report.entries.append(DiffEntry(
                    source_locale=locale,
                    target_locale=locale,
                    target_native_locale=fresh.metadata.get("language", locale),
                    target_store=store,
                    is_new_locale=known is None,
                    fields=diffs,
                ))
        return report

    def stale_pending_changes(
        self,
        pending: Iterable[PendingFieldChange],
        details: Mapping[str, LocaleDetail],
    ) -> List[PendingFieldChange]:
        """Queued field edits whose recorded baseline no longer matches the remote value."""
        stale = []
        for change in pending:
            detail = details.get(change.locale)
            remote = detail.value(change.field) if detail else ""
            if normalize(remote) != normalize(change.old_value):
                stale.append(change)
        return stale
