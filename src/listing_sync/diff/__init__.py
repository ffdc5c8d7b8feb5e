"""
Cross-store and remote-vs-local listing diffs.
"""

from .engine import FIELD_TRANSLATION, DiffEngine, bound_to_target, normalize

__all__ = ["DiffEngine", "FIELD_TRANSLATION", "bound_to_target", "normalize"]
