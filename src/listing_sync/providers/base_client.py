"""
Shared HTTP plumbing for storefront API clients.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

try:
    import requests
except ImportError:
    requests = None

from ..core.exceptions import StoreApiError
from .auth import TokenCache


logger = logging.getLogger(__name__)


def build_query(params: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """
    Flatten query parameters.

    None values and empty lists are dropped; lists are comma-joined.
    """
    query: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            query[key] = ",".join(str(item) for item in value)
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
            continue
        query[key] = str(value)
    return query


class StoreHttpClient:
    """
    Authenticated JSON client for one storefront API.

    Subclasses set `store` and `error_prefix` and implement `_error_detail`.
    """

    store: str = ""
    error_prefix: str = "Request failed"

    def __init__(
        self,
        base_url: str,
        token_cache: TokenCache,
        timeout: int = 30,
        session=None,
    ):
        if requests is None:
            raise ImportError(
                "requests library is required for storefront clients. "
                "Install with: pip install requests"
            )
        self.base_url = base_url.rstrip("/")
        self.token_cache = token_cache
        self.timeout = timeout
        self.session = session or requests.Session()

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Dict[str, Any]:
        """
        Send a request and return the decoded JSON body ({} when empty).

        Raises:
            StoreApiError: On connection failure or non-2xx status
        """
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.token_cache.get_token()}",
            "Content-Type": "application/json",
        }

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                params=build_query(params),
                data=json.dumps(body) if body is not None else None,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StoreApiError(f"{self.error_prefix}: {e}", store=self.store) from e

        text = response.text or ""
        if not response.ok:
            message = f"{self.error_prefix} ({response.status_code} {response.reason})"
            if text:
                message = f"{message}: {self._error_detail(text)}"
            raise StoreApiError(message, store=self.store, status_code=response.status_code)

        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except ValueError as e:
            raise StoreApiError(
                f"{self.error_prefix}: invalid JSON response", store=self.store,
                status_code=response.status_code,
            ) from e

    def _error_detail(self, text: str) -> str:
        return text

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", path, params=params)

    def post(self, path: str, body: Any = None) -> Dict[str, Any]:
        return self.request("POST", path, body=body)

    def patch(self, path: str, body: Any) -> Dict[str, Any]:
        return self.request("PATCH", path, body=body)

    def put(self, path: str, body: Any) -> Dict[str, Any]:
        return self.request("PUT", path, body=body)

    def delete(self, path: str) -> None:
        self.request("DELETE", path)

    def close(self) -> None:
        if self.session:
            self.session.close()
