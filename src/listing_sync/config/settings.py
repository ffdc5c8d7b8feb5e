"""
Configuration for listing-sync.

Settings come from an optional YAML file, then environment variables
override individual values. A `.env` file in the working directory is
loaded first; variables already set in the shell take precedence.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

try:
    import yaml
except ImportError:
    yaml = None

from ..core.exceptions import ConfigError
from ..core.types import StoreId
from ..providers import app_store_client, play_store_client
from ..providers.app_store_client import AppStoreClient
from ..providers.auth import TokenCache, static_token
from ..providers.play_store_client import PlayStoreClient
from ..providers.text_service import DEFAULT_BASE_URL as OPENAI_DEFAULT_BASE_URL
from ..providers.text_service import DEFAULT_MODEL as OPENAI_DEFAULT_MODEL
from ..providers.text_service import TextServiceClient, TextServiceConfig
from ..storefronts.app_store import AppStoreGateway
from ..storefronts.play_store import PlayStoreGateway
from ..translation.pipeline import TranslationConfig


logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


def load_dotenv_if_present(env_path: Optional[Path] = None) -> bool:
    """
    Load a .env file into the process environment.

    Existing environment variables are never overwritten.

    Returns:
        True if a file was read
    """
    env_path = Path(env_path) if env_path else Path.cwd() / ".env"
    if not env_path.exists():
        return False

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if key and os.environ.get(key) is None:
            os.environ[key] = value
    return True


def _first_non_empty_env(*keys: str) -> Optional[str]:
    """Return the first non-empty env var value for the given keys."""
    for key in keys:
        value = os.environ.get(key)
        if value is not None and value.strip() != "":
            return value
    return None


def _env_number(key: str, cast=float):
    """Parse a numeric env var, or None when unset."""
    raw = _first_non_empty_env(key)
    if raw is None:
        return None
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class StoreSettings:
    """
    Storefront API settings.

    Bearer tokens are minted outside this tool and supplied pre-issued.
    """
    asc_base_url: str = app_store_client.DEFAULT_BASE_URL
    asc_api_token: Optional[str] = None
    play_base_url: str = play_store_client.DEFAULT_BASE_URL
    play_access_token: Optional[str] = None
    timeout_seconds: int = 30


@dataclass
class Settings:
    """
    Top-level settings.

    Attributes:
        db_path: SQLite repository path
        log_level: Logging level name
        log_structured: JSON log lines when True
        openai_api_key: Text service bearer token
        openai_model: Text service model
        openai_base_url: Text service base URL
        translation: Translation pipeline settings
        stores: Storefront API settings
    """
    db_path: str = "data/listing_sync.db"
    log_level: str = "INFO"
    log_structured: bool = False
    openai_api_key: Optional[str] = None
    openai_model: str = OPENAI_DEFAULT_MODEL
    openai_base_url: str = OPENAI_DEFAULT_BASE_URL
    translation: TranslationConfig = field(default_factory=TranslationConfig)
    stores: StoreSettings = field(default_factory=StoreSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        database = data.get("database") or {}
        log = data.get("logging") or {}
        openai = data.get("openai") or {}
        translation = data.get("translation") or {}
        app_store = data.get("app_store") or {}
        play_store = data.get("play_store") or {}

        settings = cls()
        settings.db_path = str(database.get("path", settings.db_path))
        settings.log_level = str(log.get("level", settings.log_level)).upper()
        settings.log_structured = _as_bool(log.get("structured", settings.log_structured))
        settings.openai_api_key = openai.get("api_key", settings.openai_api_key)
        settings.openai_model = openai.get("model", settings.openai_model)
        settings.openai_base_url = openai.get("base_url", settings.openai_base_url)

        settings.translation = TranslationConfig(
            max_retries=int(translation.get("max_retries", 5)),
            retry_base_seconds=float(translation.get("retry_base_ms", 1000)) / 1000.0,
            call_delay_seconds=float(translation.get("delay_ms", 500)) / 1000.0,
            strict_limits=_as_bool(translation.get("strict_limits", False)),
            style_instruction=translation.get("style_instruction"),
        )
        settings.stores = StoreSettings(
            asc_base_url=app_store.get("base_url", app_store_client.DEFAULT_BASE_URL),
            asc_api_token=app_store.get("api_token"),
            play_base_url=play_store.get("base_url", play_store_client.DEFAULT_BASE_URL),
            play_access_token=play_store.get("access_token"),
            timeout_seconds=int(data.get("timeout_seconds", 30)),
        )
        return settings

    def apply_env_overrides(self) -> None:
        """Apply environment variable overrides in place."""
        env = os.environ
        self.db_path = _first_non_empty_env("LISTING_SYNC_DB_PATH", "WEB_DB_PATH") or self.db_path
        self.log_level = (env.get("LISTING_SYNC_LOG_LEVEL") or self.log_level).upper()
        if env.get("LISTING_SYNC_LOG_STRUCTURED"):
            self.log_structured = _as_bool(env["LISTING_SYNC_LOG_STRUCTURED"])

        self.openai_api_key = _first_non_empty_env("OPENAI_API_KEY") or self.openai_api_key
        self.openai_model = _first_non_empty_env("OPENAI_MODEL") or self.openai_model
        self.openai_base_url = _first_non_empty_env("OPENAI_BASE_URL") or self.openai_base_url

        max_retries = _env_number("TRANSLATION_MAX_RETRIES", int)
        if max_retries is not None:
            self.translation.max_retries = max_retries
        retry_base_ms = _env_number("TRANSLATION_RETRY_BASE_MS")
        if retry_base_ms is not None:
            self.translation.retry_base_seconds = retry_base_ms / 1000.0
        delay_ms = _env_number("TRANSLATION_DELAY_MS")
        if delay_ms is not None:
            self.translation.call_delay_seconds = delay_ms / 1000.0
        strict = _first_non_empty_env("TRANSLATION_STRICT_LIMITS", "ASC_STRICT_LIMITS")
        if strict:
            self.translation.strict_limits = _as_bool(strict)

        self.stores.asc_base_url = _first_non_empty_env("ASC_BASE_URL") or self.stores.asc_base_url
        self.stores.asc_api_token = _first_non_empty_env("ASC_API_TOKEN") or self.stores.asc_api_token
        self.stores.play_base_url = _first_non_empty_env("GPC_BASE_URL") or self.stores.play_base_url
        self.stores.play_access_token = _first_non_empty_env("GPC_ACCESS_TOKEN") or self.stores.play_access_token

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level)
        if not isinstance(level, int):
            raise ConfigError(f"Invalid log level: {self.log_level}")
        return level

    def build_text_client(self) -> TextServiceClient:
        if not self.openai_api_key:
            raise ConfigError("OPENAI_API_KEY is not configured.")
        return TextServiceClient(TextServiceConfig(
            api_key=self.openai_api_key,
            model=self.openai_model,
            base_url=self.openai_base_url,
        ))

    def build_gateways(self) -> Dict[StoreId, Any]:
        """Build a gateway for every storefront that has a token configured."""
        gateways: Dict[StoreId, Any] = {}
        if self.stores.asc_api_token:
            cache = TokenCache(static_token(self.stores.asc_api_token, app_store_client.TOKEN_LIFETIME_SECONDS))
            gateways[StoreId.APP_STORE] = AppStoreGateway(
                AppStoreClient(cache, base_url=self.stores.asc_base_url, timeout=self.stores.timeout_seconds)
            )
        if self.stores.play_access_token:
            cache = TokenCache(static_token(self.stores.play_access_token, play_store_client.TOKEN_LIFETIME_SECONDS))
            gateways[StoreId.PLAY_STORE] = PlayStoreGateway(
                PlayStoreClient(cache, base_url=self.stores.play_base_url, timeout=self.stores.timeout_seconds)
            )
        if not gateways:
            raise ConfigError("No storefront credentials configured (set ASC_API_TOKEN and/or GPC_ACCESS_TOKEN).")
        return gateways


def load_settings(config_path: Optional[Union[str, Path]] = None, load_dotenv: bool = True) -> Settings:
    """
    Load settings from YAML (optional) and the environment.

    Raises:
        ConfigError: If the file is missing or not a mapping
    """
    if load_dotenv:
        load_dotenv_if_present()

    data: Dict[str, Any] = {}
    if config_path:
        if yaml is None:
            raise ImportError("pyyaml is required for config loading. Install with: pip install pyyaml")
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        logger.info(f"Loading config from: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {path}")

    settings = Settings.from_dict(data)
    settings.apply_env_overrides()
    return settings
