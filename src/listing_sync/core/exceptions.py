"""
Custom exceptions for listing-sync.
"""

from typing import List, Optional


class ListingSyncError(Exception):
    """Base exception for all listing-sync errors."""
    pass


class TextServiceError(ListingSyncError):
    """
    Error returned by the text (translation) service.

    Attributes:
        status_code: HTTP status code if the service answered
        retry_after: Server-provided wait hint in seconds, if any
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class StoreApiError(ListingSyncError):
    """
    Error communicating with a storefront API.

    Raised when:
    - The storefront returns a non-2xx status
    - The connection fails or times out
    - A required identifier is missing from the app record
    """

    def __init__(self, message: str, store: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.store = store
        self.status_code = status_code


class LengthBudgetExceededError(ListingSyncError):
    """Raised in strict mode when a shortened text still exceeds its budget."""

    def __init__(self, message: str, locale: str, field: str, length: int, limit: int):
        super().__init__(message)
        self.locale = locale
        self.field = field
        self.length = length
        self.limit = limit


class MissingMandatoryFieldsError(ListingSyncError):
    """Raised when a locale add is queued without all mandatory fields."""

    def __init__(self, store: str, locale: str, missing_fields: List[str]):
        super().__init__(
            f"Cannot add {locale} to {store}: missing mandatory fields "
            f"{', '.join(missing_fields)}"
        )
        self.store = store
        self.locale = locale
        self.missing_fields = list(missing_fields)


class UnsupportedLocaleError(ListingSyncError):
    """Raised when a locale is not in a storefront's supported set."""

    def __init__(self, store: str, locale: str):
        super().__init__(f"Locale {locale} is not supported by {store}")
        self.store = store
        self.locale = locale


class ConfigError(ListingSyncError):
    """Configuration is invalid or incomplete."""
    pass


class RepositoryError(ListingSyncError):
    """Error reading or writing persisted state."""
    pass


class JobStateError(ListingSyncError):
    """Invalid sync job status transition."""
    pass
