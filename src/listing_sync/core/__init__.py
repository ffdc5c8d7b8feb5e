"""
Core types, exceptions and logging utilities.
"""

from .exceptions import (
    ConfigError,
    JobStateError,
    LengthBudgetExceededError,
    ListingSyncError,
    MissingMandatoryFieldsError,
    RepositoryError,
    StoreApiError,
    TextServiceError,
    UnsupportedLocaleError,
)
from .types import (
    AppRecord,
    DiffEntry,
    DiffReport,
    FieldDiff,
    JobStatus,
    LengthUnit,
    LocaleAction,
    LocaleActionType,
    LocaleDetail,
    PendingFieldChange,
    PendingLocaleChange,
    SkippedLocale,
    StoreId,
    StoreScope,
    SyncJob,
    SyncJobLog,
)

__all__ = [
    "AppRecord",
    "ConfigError",
    "DiffEntry",
    "DiffReport",
    "FieldDiff",
    "JobStateError",
    "JobStatus",
    "LengthBudgetExceededError",
    "LengthUnit",
    "ListingSyncError",
    "LocaleAction",
    "LocaleActionType",
    "LocaleDetail",
    "MissingMandatoryFieldsError",
    "PendingFieldChange",
    "PendingLocaleChange",
    "RepositoryError",
    "SkippedLocale",
    "StoreApiError",
    "StoreId",
    "StoreScope",
    "SyncJob",
    "SyncJobLog",
    "TextServiceError",
    "UnsupportedLocaleError",
]
