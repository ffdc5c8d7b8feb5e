"""
Background sync jobs: preflight execution and the single-worker runner.
"""

from .preflight import PreflightService
from .runner import SyncJobRunner

__all__ = ["PreflightService", "SyncJobRunner"]
