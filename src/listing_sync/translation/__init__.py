"""
Translate-then-shorten pipeline with typed progress events.
"""

from .events import (
    DoneEvent,
    FieldErrorEvent,
    FieldShortenedEvent,
    FieldTranslatedEvent,
    LocaleDoneEvent,
    LocaleSkippedEvent,
    StartEvent,
    TranslatedField,
    iter_ndjson,
)
from .pipeline import (
    FieldOutcome,
    LocaleWork,
    TranslationConfig,
    TranslationPipeline,
    TranslationRequest,
    plan_translation_targets,
)

__all__ = [
    "DoneEvent",
    "FieldErrorEvent",
    "FieldOutcome",
    "FieldShortenedEvent",
    "FieldTranslatedEvent",
    "LocaleDoneEvent",
    "LocaleSkippedEvent",
    "LocaleWork",
    "StartEvent",
    "TranslatedField",
    "TranslationConfig",
    "TranslationPipeline",
    "TranslationRequest",
    "iter_ndjson",
    "plan_translation_targets",
]
