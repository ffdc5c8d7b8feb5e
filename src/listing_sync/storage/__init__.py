"""
Persistence for apps, locale lists, locale details and sync jobs.
"""

from .repository import Repository
from .sqlite_repository import SqliteRepository

__all__ = ["Repository", "SqliteRepository"]
