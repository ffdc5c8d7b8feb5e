"""
App Store Connect API client.
"""

import json
import logging
from typing import Optional

from .auth import TokenCache
from .base_client import StoreHttpClient


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.appstoreconnect.apple.com"

# ES256 developer tokens are valid for at most 20 minutes
TOKEN_LIFETIME_SECONDS = 20 * 60


class AppStoreClient(StoreHttpClient):
    """
    JSON:API client for App Store Connect.

    Error messages join each entry of the `errors` array as
    "status - title - detail".
    """

    store = "app_store"
    error_prefix = "ASC request failed"

    def __init__(
        self,
        token_cache: TokenCache,
        base_url: Optional[str] = None,
        timeout: int = 30,
        session=None,
    ):
        super().__init__(base_url or DEFAULT_BASE_URL, token_cache, timeout=timeout, session=session)

    def _error_detail(self, text: str) -> str:
        try:
            payload = json.loads(text)
        except ValueError:
            return text
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if not isinstance(errors, list) or not errors:
            return text
        return " | ".join(
            " - ".join(str(part) for part in (err.get("status"), err.get("title"), err.get("detail")) if part)
            for err in errors
            if isinstance(err, dict)
        )
