"""
Core data types for listing-sync.

Snapshots are immutable and superseded wholesale on each fetch; pending
changes and jobs are plain mutable records keyed the way the change queue
and repository address them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


LOCALE_KEY = "__locale__"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreId(str, Enum):
    """Storefront identifier."""
    APP_STORE = "app_store"
    PLAY_STORE = "play_store"

    @property
    def other(self) -> "StoreId":
        return StoreId.PLAY_STORE if self is StoreId.APP_STORE else StoreId.APP_STORE


class StoreScope(str, Enum):
    """Which storefronts a sync job covers."""
    APP_STORE = "app_store"
    PLAY_STORE = "play_store"
    BOTH = "both"

    def stores(self) -> List[StoreId]:
        if self is StoreScope.BOTH:
            return [StoreId.APP_STORE, StoreId.PLAY_STORE]
        return [StoreId(self.value)]


class LengthUnit(str, Enum):
    """Unit a field's length limit is measured in."""
    CHARS = "chars"
    BYTES = "bytes"


class LocaleActionType(str, Enum):
    """Kind of per-locale write."""
    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"


class JobStatus(str, Enum):
    """Status of a background sync job."""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        if self is JobStatus.QUEUED:
            return target in (JobStatus.RUNNING, JobStatus.FAILED)
        if self is JobStatus.RUNNING:
            return target.is_terminal
        return False


@dataclass(frozen=True)
class LocaleDetail:
    """
    Immutable per-locale record of one storefront's listing text.

    Attributes:
        store: Storefront the text was read from
        locale: Canonical locale code
        fields: Field name to text (absent fields are not present)
        lengths: Field name to length, measured in the field's declared unit
        screenshots: Screenshot groups, or None when unavailable
        fetched_at: When the snapshot was taken
        metadata: Storefront resource ids needed for later writes
    """
    store: StoreId
    locale: str
    fields: Dict[str, str] = field(default_factory=dict)
    lengths: Dict[str, int] = field(default_factory=dict)
    screenshots: Optional[List[Dict[str, Any]]] = None
    fetched_at: datetime = field(default_factory=_utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def value(self, field_name: str) -> str:
        """Return the field text, or an empty string when absent."""
        return self.fields.get(field_name) or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store": self.store.value,
            "locale": self.locale,
            "fields": dict(self.fields),
            "lengths": dict(self.lengths),
            "screenshots": self.screenshots,
            "fetched_at": self.fetched_at.isoformat(),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class FieldDiff:
    """A proposed value for one field of one target locale."""
    field: str
    old_value: str
    new_value: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "old_value": self.old_value, "new_value": self.new_value}


@dataclass
class DiffEntry:
    """
    Proposed changes for one target locale.

    Attributes:
        source_locale: Canonical locale in the source store
        target_locale: Canonical locale in the target store
        target_native_locale: Target store's own code for the locale
        target_store: Store the changes would be written to
        is_new_locale: True when the target store has no listing yet
        fields: Per-field proposals
    """
    source_locale: str
    target_locale: str
    target_store: StoreId
    is_new_locale: bool
    fields: List[FieldDiff] = field(default_factory=list)
    target_native_locale: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_locale": self.source_locale,
            "target_locale": self.target_locale,
            "target_native_locale": self.target_native_locale,
            "target_store": self.target_store.value,
            "is_new_locale": self.is_new_locale,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class SkippedLocale:
    """A source locale the diff engine did not propose changes for."""
    source_locale: str
    reason: str


@dataclass
class DiffReport:
    """Result of diffing one store's snapshot against another's."""
    source_store: StoreId
    target_store: StoreId
    entries: List[DiffEntry] = field(default_factory=list)
    skipped: List[SkippedLocale] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_store": self.source_store.value,
            "target_store": self.target_store.value,
            "entries": [e.to_dict() for e in self.entries],
            "skipped": [{"source_locale": s.source_locale, "reason": s.reason} for s in self.skipped],
        }


ChangeKey = Tuple[StoreId, str, str]


@dataclass
class PendingFieldChange:
    """A queued field edit; old_value is the baseline captured at first edit."""
    store: StoreId
    locale: str
    field: str
    old_value: str
    new_value: str

    @property
    def key(self) -> ChangeKey:
        return (self.store, self.locale, self.field)


@dataclass
class PendingLocaleChange:
    """A queued locale add or remove."""
    store: StoreId
    locale: str
    action: LocaleActionType

    @property
    def key(self) -> ChangeKey:
        return (self.store, self.locale, LOCALE_KEY)


@dataclass
class LocaleAction:
    """
    One per-locale write in a write plan.

    Attributes:
        store: Target storefront
        locale: Canonical locale
        action: add, remove or update
        fields: Field values to write (empty for remove)
        keys: Queue keys settled by this action
    """
    store: StoreId
    locale: str
    action: LocaleActionType
    fields: Dict[str, str] = field(default_factory=dict)
    keys: List[ChangeKey] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.store.value}:{self.locale}:{self.action.value}"


@dataclass
class AppRecord:
    """
    An app managed by listing-sync.

    Attributes:
        id: Repository id
        name: Display name
        source_locale: Locale the team authors listing text in
        asc_app_id: App Store Connect app id
        android_package_name: Google Play package name
    """
    id: int
    name: str
    source_locale: str = "en-US"
    asc_app_id: Optional[str] = None
    android_package_name: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class SyncJob:
    """A background sync job record."""
    id: int
    app_id: int
    store_scope: StoreScope
    status: JobStatus = JobStatus.QUEUED
    payload: Dict[str, Any] = field(default_factory=dict)
    summary: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "app_id": self.app_id,
            "store_scope": self.store_scope.value,
            "status": self.status.value,
            "payload": self.payload,
            "summary": self.summary,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass
class SyncJobLog:
    """A log line attached to a sync job."""
    id: int
    job_id: int
    level: str
    message: str
    created_at: datetime = field(default_factory=_utcnow)
