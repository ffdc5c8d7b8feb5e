"""
Per-storefront gateways: snapshot reads and single-locale writes.
"""

from .app_store import AppStoreGateway
from .base import StorefrontGateway
from .play_store import PlayStoreGateway

__all__ = ["AppStoreGateway", "PlayStoreGateway", "StorefrontGateway"]
