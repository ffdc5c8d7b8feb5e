"""
Write-plan execution with independent per-locale outcomes.
"""

from .engine import ActionOutcome, ApplyEngine, ApplyReport, apply_locale_changes_to_list

__all__ = ["ActionOutcome", "ApplyEngine", "ApplyReport", "apply_locale_changes_to_list"]
