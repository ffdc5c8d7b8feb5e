"""
Change queue and write-plan builder.

Pending edits from diffs, translations and direct user input go through the
same upsert. A field change that returns to its original baseline drops out
of the queue.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from ..catalog.locales import canonicalize, is_supported
from ..catalog.store_rules import mandatory_fields
from ..core.exceptions import MissingMandatoryFieldsError, UnsupportedLocaleError
from ..core.types import (
    LOCALE_KEY,
    ChangeKey,
    DiffReport,
    LocaleAction,
    LocaleActionType,
    PendingFieldChange,
    PendingLocaleChange,
    StoreId,
)


logger = logging.getLogger(__name__)

PendingChange = Union[PendingFieldChange, PendingLocaleChange]


@dataclass
class PlanRejection:
    """A locale add left out of a write plan."""
    store: StoreId
    locale: str
    missing_fields: List[str]
    reason: str


@dataclass
class WritePlan:
    """Per-locale actions ready to apply, plus rejected adds."""
    actions: List[LocaleAction] = field(default_factory=list)
    rejected: List[PlanRejection] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.actions


class ChangeQueue:
    """
    Pending changes keyed by (store, locale, field) or (store, locale, "__locale__").

    Example:
        >>> queue = ChangeQueue()
        >>> queue.upsert_field(StoreId.PLAY_STORE, "de-DE", "title", "Neu", original_value="Alt")
        >>> queue.upsert_field(StoreId.PLAY_STORE, "de-DE", "title", "Alt", original_value="Alt")
        >>> len(queue)
        0
    """

    def __init__(self):
        self._entries: Dict[ChangeKey, PendingChange] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: ChangeKey) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: ChangeKey) -> Optional[PendingChange]:
        with self._lock:
            return self._entries.get(key)

    def entries(self) -> List[PendingChange]:
        """All pending changes sorted by (store, locale, field)."""
        with self._lock:
            return [self._entries[key] for key in sorted(self._entries, key=lambda k: (k[0].value, k[1], k[2]))]

    def field_changes(self, store: StoreId, locale: str) -> List[PendingFieldChange]:
        store = StoreId(store)
        locale = canonicalize(locale)
        return [
            change for change in self.entries()
            if isinstance(change, PendingFieldChange) and change.store is store and change.locale == locale
        ]

    def locale_change(self, store: StoreId, locale: str) -> Optional[PendingLocaleChange]:
        key = (StoreId(store), canonicalize(locale), LOCALE_KEY)
        with self._lock:
            return self._entries.get(key)

    def upsert_field(
        self,
        store: StoreId,
        locale: str,
        field_name: str,
        new_value: str,
        original_value: str = "",
    ) -> Optional[PendingFieldChange]:
        """
        Record or overwrite a pending field change.

        The baseline is the existing entry's old_value when one is queued,
        otherwise `original_value`. Returns None when the new value equals
        the baseline (the entry is removed).
        """
        key = (StoreId(store), canonicalize(locale), field_name)
        with self._lock:
            existing = self._entries.get(key)
            baseline = existing.old_value if isinstance(existing, PendingFieldChange) else (original_value or "")
            if new_value == baseline:
                self._entries.pop(key, None)
                return None
            change = PendingFieldChange(
                store=key[0], locale=key[1], field=field_name, old_value=baseline, new_value=new_value,
            )
            self._entries[key] = change
            return change

    def missing_mandatory_fields(self, store: StoreId, locale: str) -> List[str]:
        """Mandatory fields with no non-empty pending value for the locale."""
        store = StoreId(store)
        locale = canonicalize(locale)
        missing = []
        for name in mandatory_fields(store):
            change = self.get((store, locale, name))
            if not isinstance(change, PendingFieldChange) or not change.new_value.strip():
                missing.append(name)
        return missing

    def queue_locale_action(
        self,
        store: StoreId,
        locale: str,
        action: LocaleActionType,
        existing_locales: Iterable[str] = (),
    ) -> Optional[PendingLocaleChange]:
        """
        Queue a locale add or remove with toggle semantics.

        - add of a locale the store already has cancels a pending remove
        - remove of a locale the store does not have cancels a pending add
        - repeating the pending action cancels it
        - remove clears the locale's pending field changes

        Raises:
            UnsupportedLocaleError: Add of a locale the store does not support
            MissingMandatoryFieldsError: Add without every mandatory field queued
        """
        store = StoreId(store)
        locale = canonicalize(locale)
        action = LocaleActionType(action)
        if action is LocaleActionType.UPDATE:
            raise ValueError("Only add and remove are locale actions")
        existing = {canonicalize(code) for code in existing_locales}
        key = (store, locale, LOCALE_KEY)

        with self._lock:
            pending = self._entries.get(key)

            if action is LocaleActionType.ADD and locale in existing:
                if isinstance(pending, PendingLocaleChange) and pending.action is LocaleActionType.REMOVE:
                    del self._entries[key]
                return None

            if action is LocaleActionType.REMOVE and locale not in existing:
                if isinstance(pending, PendingLocaleChange) and pending.action is LocaleActionType.ADD:
                    del self._entries[key]
                return None

            if isinstance(pending, PendingLocaleChange) and pending.action is action:
                del self._entries[key]
                return None

            if action is LocaleActionType.ADD:
                if not is_supported(locale, store):
                    raise UnsupportedLocaleError(store.value, locale)
                missing = self.missing_mandatory_fields(store, locale)
                if missing:
                    raise MissingMandatoryFieldsError(store.value, locale, missing)
            else:
                for change in self.field_changes(store, locale):
                    del self._entries[change.key]

            change = PendingLocaleChange(store=store, locale=locale, action=action)
            self._entries[key] = change
            return change

    def ingest_diff(self, report: DiffReport, existing_locales: Optional[Iterable[str]] = None) -> int:
        """
        Queue every field proposal of a diff report through upsert_field.

        New locales get an add action once their mandatory fields are queued;
        an add that cannot be queued yet is logged and left for the caller.

        Returns:
            Number of field changes now pending from this report
        """
        existing = set(existing_locales or [])
        queued = 0
        for entry in report.entries:
            for diff in entry.fields:
                if self.upsert_field(entry.target_store, entry.target_locale, diff.field, diff.new_value, diff.old_value):
                    queued += 1
            if entry.is_new_locale and self.locale_change(entry.target_store, entry.target_locale) is None:
                try:
                    self.queue_locale_action(
                        entry.target_store, entry.target_locale, LocaleActionType.ADD, existing,
                    )
                except (MissingMandatoryFieldsError, UnsupportedLocaleError) as e:
                    logger.info(f"Locale add not queued: {e}")
        return queued

    def build_write_plan(self, store: Optional[StoreId] = None) -> WritePlan:
        """
        Partition pending changes into per-locale actions.

        Locales with an add/remove action carry their field changes as
        payload; other locales with field changes become update actions.
        Adds missing a mandatory field are rejected, not planned.
        """
        wanted = StoreId(store) if store is not None else None
        plan = WritePlan()
        grouped: Dict[tuple, List[PendingChange]] = {}
        with self._lock:
            for change in self.entries():
                if wanted is not None and change.store is not wanted:
                    continue
                grouped.setdefault((change.store, change.locale), []).append(change)

        for (locale_store, locale), changes in grouped.items():
            locale_change = next((c for c in changes if isinstance(c, PendingLocaleChange)), None)
            field_changes = [c for c in changes if isinstance(c, PendingFieldChange)]
            fields = {c.field: c.new_value for c in field_changes}
            keys = [c.key for c in changes]

            if locale_change is None:
                plan.actions.append(LocaleAction(locale_store, locale, LocaleActionType.UPDATE, fields, keys))
                continue

            if locale_change.action is LocaleActionType.ADD:
                missing = self.missing_mandatory_fields(locale_store, locale)
                if missing:
                    plan.rejected.append(PlanRejection(
                        store=locale_store,
                        locale=locale,
                        missing_fields=missing,
                        reason=f"Missing mandatory fields: {', '.join(missing)}",
                    ))
                    continue

            payload = fields if locale_change.action is LocaleActionType.ADD else {}
            plan.actions.append(LocaleAction(locale_store, locale, locale_change.action, payload, keys))

        return plan

    def discard(self, keys: Iterable[ChangeKey]) -> None:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
