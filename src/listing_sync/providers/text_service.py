"""
Text service client.

Thin HTTP client for an OpenAI-compatible /chat/completions endpoint, used
for translating and shortening listing text.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Mapping, Optional

try:
    import requests
except ImportError:
    requests = None

from ..core.exceptions import TextServiceError


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


@dataclass
class TextServiceConfig:
    """
    Configuration for the text service.

    Attributes:
        api_key: Bearer token
        model: Model identifier
        base_url: API base URL (up to and including /v1)
        temperature: Sampling temperature
        timeout_seconds: Request timeout
    """
    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    temperature: float = 0.2
    timeout_seconds: int = 120


def parse_retry_after(headers: Mapping[str, str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Read the server's wait hint in seconds.

    `retry-after-ms` wins over `Retry-After`; the latter may be seconds or
    an HTTP date.
    """
    lowered = {k.lower(): v for k, v in (headers or {}).items()}

    raw_ms = lowered.get("retry-after-ms")
    if raw_ms:
        try:
            return max(float(raw_ms) / 1000.0, 0.0)
        except ValueError:
            pass

    raw = lowered.get("retry-after")
    if not raw:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max((when - now).total_seconds(), 0.0)


class TextServiceClient:
    """
    HTTP client for the translation text service.

    Example:
        >>> client = TextServiceClient(TextServiceConfig(api_key="sk-..."))
        >>> client.complete([{"role": "user", "content": "Hola"}])
    """

    def __init__(self, config: TextServiceConfig, session=None):
        if requests is None:
            raise ImportError(
                "requests library is required for TextServiceClient. "
                "Install with: pip install requests"
            )
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.session = session or requests.Session()

        logger.debug(f"Initialized TextServiceClient: base_url={self.base_url}, model={config.model}")

    def complete(self, messages: List[Dict[str, str]], **kwargs: Any) -> str:
        """
        Run a chat completion and return the trimmed message content.

        Raises:
            TextServiceError: On connection failure, non-2xx status or an
                empty completion. 429 responses carry `retry_after`.
        """
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
        }
        payload.update(kwargs)

        try:
            response = self.session.post(
                url,
                data=json.dumps(payload),
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.config.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            raise TextServiceError(f"OpenAI request failed: {e}") from e

        raw = response.text or ""
        if not response.ok:
            message = f"OpenAI request failed ({response.status_code} {response.reason})"
            if raw:
                message = f"{message}: {self._error_detail(raw)}"
            raise TextServiceError(
                message,
                status_code=response.status_code,
                retry_after=parse_retry_after(response.headers),
            )

        try:
            data = json.loads(raw) if raw else {}
        except ValueError as e:
            raise TextServiceError(f"OpenAI returned invalid JSON: {e}") from e

        choices = data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if not isinstance(content, str) or not content.strip():
            raise TextServiceError("OpenAI response missing translated content.")
        return content.strip()

    @staticmethod
    def _error_detail(raw: str) -> str:
        try:
            payload = json.loads(raw)
        except ValueError:
            return raw
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return raw

    def close(self) -> None:
        if self.session:
            self.session.close()
