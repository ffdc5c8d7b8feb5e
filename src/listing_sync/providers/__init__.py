"""
Authenticated clients for App Store Connect, Google Play and the text service.
"""

from .app_store_client import AppStoreClient
from .auth import TokenCache, static_token
from .play_store_client import PlayStoreClient
from .text_service import TextServiceClient, TextServiceConfig, parse_retry_after

__all__ = [
    "AppStoreClient",
    "PlayStoreClient",
    "TextServiceClient",
    "TextServiceConfig",
    "TokenCache",
    "parse_retry_after",
    "static_token",
]
