"""
Locale workload computation.

Compares the locales an app is configured for with what a storefront
actually has.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..catalog.locales import canonicalize
from ..core.types import StoreId


HIGH_LOAD_THRESHOLD = 40


@dataclass
class LocaleWorkload:
    """Configured-vs-remote locale breakdown for one store. All lists sorted."""
    configured_locales: List[str] = field(default_factory=list)
    remote_locales: List[str] = field(default_factory=list)
    overlap_locales: List[str] = field(default_factory=list)
    missing_in_remote: List[str] = field(default_factory=list)
    unmanaged_in_config: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "configured_locales": self.configured_locales,
            "remote_locales": self.remote_locales,
            "overlap_locales": self.overlap_locales,
            "missing_in_remote": self.missing_in_remote,
            "unmanaged_in_config": self.unmanaged_in_config,
        }


def build_locale_workload(configured: Iterable[str], remote: Iterable[str]) -> LocaleWorkload:
    configured_set = {canonicalize(code) for code in configured if code}
    remote_set = {canonicalize(code) for code in remote if code}
    return LocaleWorkload(
        configured_locales=sorted(configured_set),
        remote_locales=sorted(remote_set),
        overlap_locales=sorted(configured_set & remote_set),
        missing_in_remote=sorted(configured_set - remote_set),
        unmanaged_in_config=sorted(remote_set - configured_set),
    )


def compute_workload(
    configured: Dict[StoreId, Iterable[str]],
    remote: Optional[Dict[StoreId, Iterable[str]]] = None,
) -> Dict[str, Any]:
    """
    Build the per-store workload summary.

    Args:
        configured: Store -> locales the app is configured for
        remote: Store -> locales the storefront has; stores absent here are
            compared against an empty remote set

    Returns:
        Dict keyed by store value with workload fields plus `high_load`
    """
    remote = remote or {}
    summary: Dict[str, Any] = {}
    for store, locales in configured.items():
        workload = build_locale_workload(locales, remote.get(store, []))
        entry = workload.to_dict()
        entry["high_load"] = len(workload.configured_locales) >= HIGH_LOAD_THRESHOLD
        entry["remote_checked"] = store in remote
        summary[StoreId(store).value] = entry
    return summary
