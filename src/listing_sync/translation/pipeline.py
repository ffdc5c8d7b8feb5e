"""
Translation pipeline.

Translate-then-shorten for store listing fields:
1. One translate call with the field's length budget (plus title and style hints)
2. Measure in the field's unit
3. At most one shorten call when over budget
4. Still over budget: skip the field (default) or fail the batch (strict)

Calls to the text service are sequential and spaced by a minimum interval;
rate-limited calls are retried with backoff.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Generator, Iterable, Iterator, List, Mapping, Optional, Set

from ..catalog.locales import canonicalize, supported_locales
from ..catalog.store_rules import get_field_rule, get_rules, measure_length, title_field, translatable_fields
from ..core.exceptions import LengthBudgetExceededError, TextServiceError
from ..core.types import LocaleDetail, StoreId
from ..utils.retry import RetryPolicy, retry_rate_limited
from .events import (
    DoneEvent,
    FieldErrorEvent,
    FieldShortenedEvent,
    FieldTranslatedEvent,
    LocaleDoneEvent,
    LocaleSkippedEvent,
    StartEvent,
    TranslatedField,
)
from .prompts import build_shorten_messages, build_translate_messages


logger = logging.getLogger(__name__)


@dataclass
class TranslationConfig:
    """
    Configuration for the translation pipeline.

    Attributes:
        max_retries: Retries per call on rate limiting
        retry_base_seconds: Base of the exponential backoff
        call_delay_seconds: Minimum interval between text-service calls
        strict_limits: Fail the batch when a field is still over budget after shortening
        style_instruction: Free-form style guidance passed to every call
    """
    max_retries: int = 5
    retry_base_seconds: float = 1.0
    call_delay_seconds: float = 0.5
    strict_limits: bool = False
    style_instruction: Optional[str] = None


@dataclass
class FieldOutcome:
    """Result of translating one field for one locale."""
    locale: str
    field: str
    value: str
    ok: bool
    length: int
    max_length: int
    shortened: bool = False
    error: Optional[str] = None


@dataclass
class LocaleWork:
    """
    One target locale of a batch.

    Attributes:
        locale: Canonical target locale
        missing_fields: Fields with source text but no target value
        existing: Current target detail, if the store has one
    """
    locale: str
    missing_fields: List[str]
    existing: Optional[LocaleDetail] = None


@dataclass
class TranslationRequest:
    """
    A translation batch.

    Attributes:
        store: Storefront the text is for
        source_locale: Canonical source locale
        source_fields: Field -> source text
        work: Target locales and their missing fields
        existing_locales: Locales the store already lists (drives is_new_locale)
    """
    store: StoreId
    source_locale: str
    source_fields: Dict[str, str]
    work: List[LocaleWork] = field(default_factory=list)
    existing_locales: Set[str] = field(default_factory=set)


def plan_translation_targets(
    store: StoreId,
    source_locale: str,
    source_detail: LocaleDetail,
    existing_details: Mapping[str, LocaleDetail],
    requested_locales: Optional[Iterable[str]] = None,
    include_existing: bool = False,
) -> List[LocaleWork]:
    """
    Decide which locales and fields a batch should translate.

    Targets are the store's supported locales minus the source locale and,
    unless `include_existing`, minus locales that already have details;
    intersected with `requested_locales` when given. Only fields with source
    text and an empty target value are kept.
    """
    store = StoreId(store)
    source_locale = canonicalize(source_locale)
    candidates = set(supported_locales(store)) - {source_locale}
    if not include_existing:
        candidates -= set(existing_details)
    if requested_locales:
        candidates &= {canonicalize(code) for code in requested_locales}

    source_fields = [name for name in translatable_fields(store) if source_detail.value(name).strip()]

    work = []
    for locale in sorted(candidates):
        existing = existing_details.get(locale)
        missing = [
            name for name in source_fields
            if not (existing.value(name).strip() if existing else "")
        ]
        if missing:
            work.append(LocaleWork(locale=locale, missing_fields=missing, existing=existing))
    return work


class TranslationPipeline:
    """
    Translate and shorten listing fields through a text service.

    Example:
        >>> pipeline = TranslationPipeline(client, TranslationConfig(call_delay_seconds=1.2))
        >>> for event in pipeline.translate_batch(request):
        ...     print(event.to_dict())
    """

    def __init__(
        self,
        client,
        config: Optional[TranslationConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.config = config or TranslationConfig()
        self.retry_policy = RetryPolicy(
            max_retries=self.config.max_retries,
            base_delay_seconds=self.config.retry_base_seconds,
        )
        self._sleep = sleep
        self._clock = clock
        self._last_call_at: Optional[float] = None

    def _wait_for_rate_limit(self) -> None:
        """Enforce the minimum interval between text-service calls."""
        if self.config.call_delay_seconds > 0 and self._last_call_at is not None:
            elapsed = self._clock() - self._last_call_at
            if elapsed < self.config.call_delay_seconds:
                self._sleep(self.config.call_delay_seconds - elapsed)
        self._last_call_at = self._clock()

    def _call(self, messages: List[Dict[str, str]], operation_name: str) -> str:
        def operation() -> str:
            self._wait_for_rate_limit()
            return self.client.complete(messages)

        return retry_rate_limited(operation, self.retry_policy, sleep=self._sleep, operation_name=operation_name)

    def iter_field(
        self,
        store: StoreId,
        source_text: str,
        source_locale: str,
        target_locale: str,
        field_name: str,
        app_title: Optional[str] = None,
    ) -> Generator[object, None, FieldOutcome]:
        """
        Translate one field, yielding progress events and returning the outcome.

        Raises:
            TextServiceError: Non-rate-limited failure or exhausted retries
            LengthBudgetExceededError: Still over budget in strict mode
        """
        store = StoreId(store)
        rule = get_field_rule(store, field_name)
        if rule is None:
            raise ValueError(f"{field_name} is not a listing field of {store.value}")
        store_name = get_rules(store).display_name
        style = self.config.style_instruction

        translated = self._call(
            build_translate_messages(
                source_text, source_locale, target_locale, field_name, store_name,
                rule.max_length, rule.unit, app_title=app_title, style_instruction=style,
            ),
            f"translate {field_name} ({target_locale})",
        )
        length = measure_length(translated, rule.unit)
        yield FieldTranslatedEvent(target_locale, field_name, length, rule.max_length)

        if length <= rule.max_length:
            return FieldOutcome(target_locale, field_name, translated, True, length, rule.max_length)

        translated = self._call(
            build_shorten_messages(
                translated, target_locale, field_name, store_name,
                rule.max_length, rule.unit, style_instruction=style,
            ),
            f"shorten {field_name} ({target_locale})",
        )
        length = measure_length(translated, rule.unit)
        yield FieldShortenedEvent(target_locale, field_name, length, rule.max_length)

        if length <= rule.max_length:
            return FieldOutcome(target_locale, field_name, translated, True, length, rule.max_length, shortened=True)

        message = f"Still over limit after shortening ({length}/{rule.max_length}). Skipped."
        if self.config.strict_limits:
            raise LengthBudgetExceededError(
                f"{target_locale} {field_name} still over limit after shortening ({length}/{rule.max_length})",
                locale=target_locale,
                field=field_name,
                length=length,
                limit=rule.max_length,
            )
        logger.warning(f"{target_locale} {field_name}: {message}")
        yield FieldErrorEvent(target_locale, field_name, message)
        return FieldOutcome(
            target_locale, field_name, "", False, length, rule.max_length, shortened=True, error=message,
        )

    def translate_field(
        self,
        store: StoreId,
        source_text: str,
        source_locale: str,
        target_locale: str,
        field_name: str,
        app_title: Optional[str] = None,
    ) -> FieldOutcome:
        """Translate one field, discarding progress events."""
        generator = self.iter_field(store, source_text, source_locale, target_locale, field_name, app_title)
        while True:
            try:
                next(generator)
            except StopIteration as stop:
                return stop.value

    def translate_batch(self, request: TranslationRequest) -> Iterator[object]:
        """
        Translate a batch, yielding events in order.

        Title fields are resolved for every locale first; the other fields
        then use the resolved (or existing) title as context. A locale whose
        first attempted field fails with nothing translated yet is skipped.

        Raises:
            LengthBudgetExceededError: In strict mode, ends the batch
        """
        store = StoreId(request.store)
        title = title_field(store)
        existing_locales = {canonicalize(code) for code in request.existing_locales}

        yield StartEvent(len(request.work), request.source_locale, store.value)

        titles: Dict[str, str] = {}
        field_errors = 0
        if request.source_fields.get(title, "").strip():
            for lw in request.work:
                if title not in lw.missing_fields:
                    continue
                try:
                    outcome = yield from self.iter_field(
                        store, request.source_fields[title], request.source_locale, lw.locale, title,
                    )
                except TextServiceError as e:
                    field_errors += 1
                    yield FieldErrorEvent(lw.locale, title, str(e))
                    continue
                if outcome.ok:
                    titles[lw.locale] = outcome.value
                else:
                    field_errors += 1

        translated_locales = 0
        skipped_locales = 0
        for lw in request.work:
            existing = lw.existing
            done: List[TranslatedField] = []
            if lw.locale in titles:
                done.append(TranslatedField(title, titles[lw.locale], existing.value(title) if existing else ""))

            existing_title = existing.value(title).strip() if existing else ""
            app_title = titles.get(lw.locale) or existing_title or None

            skipped = False
            for name in lw.missing_fields:
                if name == title or not request.source_fields.get(name, "").strip():
                    continue
                try:
                    outcome = yield from self.iter_field(
                        store, request.source_fields[name], request.source_locale, lw.locale, name,
                        app_title=app_title,
                    )
                except TextServiceError as e:
                    field_errors += 1
                    yield FieldErrorEvent(lw.locale, name, str(e))
                    if not done:
                        skipped = True
                        break
                    continue
                if outcome.ok:
                    done.append(TranslatedField(name, outcome.value, existing.value(name) if existing else ""))
                else:
                    field_errors += 1

            if skipped:
                skipped_locales += 1
                yield LocaleSkippedEvent(lw.locale, "Translation failed")
                continue

            if done:
                translated_locales += 1
                yield LocaleDoneEvent(lw.locale, lw.locale not in existing_locales, done)

        logger.info(
            f"Translation batch for {store.value} finished: {translated_locales} locales translated, "
            f"{skipped_locales} skipped, {field_errors} field errors"
        )
        yield DoneEvent(translated_locales, skipped_locales, field_errors)
