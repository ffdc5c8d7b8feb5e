"""
Apply engine.

Runs every action of a write plan concurrently and settles each one on its
own. Successful actions leave the change queue; failed ones stay queued with
their error text. Locale lists are then recomputed from the prior persisted
list plus the adds and removes that succeeded.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..catalog.locales import canonicalize
from ..core.logging import CorrelationContext, log_with_context
from ..core.types import AppRecord, LocaleAction, LocaleActionType, StoreId
from ..changes.queue import ChangeQueue, PlanRejection, WritePlan


logger = logging.getLogger(__name__)


@dataclass
class ActionOutcome:
    """Settled result of one locale action."""
    action: LocaleAction
    ok: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store": self.action.store.value,
            "locale": self.action.locale,
            "action": self.action.action.value,
            "ok": self.ok,
            "error": self.error,
        }


@dataclass
class ApplyReport:
    """Counts and per-item results of one apply call."""
    outcomes: List[ActionOutcome] = field(default_factory=list)
    rejected: List[PlanRejection] = field(default_factory=list)
    locale_lists: Dict[StoreId, List[str]] = field(default_factory=dict)

    @property
    def succeeded(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded_count": len(self.succeeded),
            "failed_count": len(self.failed),
            "rejected_count": len(self.rejected),
            "succeeded": [o.to_dict() for o in self.succeeded],
            "failed": [o.to_dict() for o in self.failed],
            "rejected": [
                {"store": r.store.value, "locale": r.locale, "missing_fields": r.missing_fields, "reason": r.reason}
                for r in self.rejected
            ],
            "locale_lists": {store.value: locales for store, locales in self.locale_lists.items()},
        }


def apply_locale_changes_to_list(current: Iterable[str], actions: Iterable[LocaleAction]) -> List[str]:
    """Merge succeeded add/remove actions into a locale list."""
    result = {canonicalize(code) for code in current}
    for action in actions:
        if action.action is LocaleActionType.ADD:
            result.add(action.locale)
        elif action.action is LocaleActionType.REMOVE:
            result.discard(action.locale)
    return sorted(result)


class ApplyEngine:
    """
    Executes write plans against storefront gateways.

    Example:
        >>> engine = ApplyEngine(repo, {StoreId.APP_STORE: asc, StoreId.PLAY_STORE: play})
        >>> report = engine.apply(app, queue.build_write_plan(), queue)
        >>> report.to_dict()["failed_count"]
        0
    """

    def __init__(self, repository, gateways: Mapping[StoreId, Any]):
        self.repository = repository
        self.gateways = dict(gateways)

    def _run_action(self, app: AppRecord, action: LocaleAction) -> None:
        gateway = self.gateways.get(action.store)
        if gateway is None:
            raise ValueError(f"No gateway configured for {action.store.value}")

        with CorrelationContext(app_id=app.id, store=action.store.value, locale=action.locale,
                                action=action.action.value):
            log_with_context(logger, logging.INFO, "Applying locale action")
            if action.action is LocaleActionType.ADD:
                gateway.add_locale(app, action.locale, action.fields)
            elif action.action is LocaleActionType.UPDATE:
                gateway.update_locale(app, action.locale, action.fields)
            else:
                gateway.remove_locale(app, action.locale)

    def apply(self, app: AppRecord, plan: WritePlan, queue: Optional[ChangeQueue] = None) -> ApplyReport:
        report = ApplyReport(rejected=list(plan.rejected))
        if plan.is_empty:
            return report

        with ThreadPoolExecutor(max_workers=len(plan.actions)) as executor:
            futures = [(action, executor.submit(self._run_action, app, action)) for action in plan.actions]
            for action, future in futures:
                try:
                    future.result()
                    report.outcomes.append(ActionOutcome(action=action, ok=True))
                except Exception as e:
                    logger.warning(f"Locale action {action.label} failed: {e}")
                    report.outcomes.append(ActionOutcome(action=action, ok=False, error=str(e)))

        if queue is not None:
            for outcome in report.succeeded:
                queue.discard(outcome.action.keys)

        structural = [
            o.action for o in report.succeeded
            if o.action.action in (LocaleActionType.ADD, LocaleActionType.REMOVE)
        ]
        for store in sorted({a.store for a in structural}, key=lambda s: s.value):
            current = self.repository.list_locales(app.id, store)
            updated = apply_locale_changes_to_list(current, [a for a in structural if a.store is store])
            self.repository.replace_locales(app.id, store, updated)
            report.locale_lists[store] = updated

        logger.info(
            f"Applied write plan for app {app.id}: {len(report.succeeded)} succeeded, "
            f"{len(report.failed)} failed, {len(report.rejected)} rejected"
        )
        return report
