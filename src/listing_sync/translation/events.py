"""
Translation progress events.

A batch reports progress as a finite, ordered sequence of these events.
`iter_ndjson` renders them as newline-delimited JSON for streaming.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List

from ..core.exceptions import ListingSyncError


@dataclass(frozen=True)
class StartEvent:
    total_locales: int
    source_locale: str
    store: str
    type: str = field(default="start", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "total_locales": self.total_locales,
            "source_locale": self.source_locale,
            "store": self.store,
        }


@dataclass(frozen=True)
class FieldTranslatedEvent:
    locale: str
    field: str
    length: int
    max_length: int
    type: str = field(default="field_translated", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "locale": self.locale,
            "field": self.field,
            "length": self.length,
            "max_length": self.max_length,
        }


@dataclass(frozen=True)
class FieldShortenedEvent:
    locale: str
    field: str
    length: int
    max_length: int
    type: str = field(default="field_shortened", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "locale": self.locale,
            "field": self.field,
            "length": self.length,
            "max_length": self.max_length,
        }


@dataclass(frozen=True)
class FieldErrorEvent:
    locale: str
    field: str
    error: str
    type: str = field(default="field_error", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "locale": self.locale, "field": self.field, "error": self.error}


@dataclass(frozen=True)
class TranslatedField:
    field: str
    value: str
    old_value: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "value": self.value, "old_value": self.old_value}


@dataclass(frozen=True)
class LocaleDoneEvent:
    locale: str
    is_new_locale: bool
    fields: List[TranslatedField]
    type: str = field(default="locale_done", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "locale": self.locale,
            "is_new_locale": self.is_new_locale,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class LocaleSkippedEvent:
    locale: str
    reason: str
    type: str = field(default="locale_skipped", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "locale": self.locale, "reason": self.reason}


@dataclass(frozen=True)
class DoneEvent:
    translated: int
    skipped: int = 0
    field_errors: int = 0
    type: str = field(default="done", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "translated": self.translated,
            "skipped": self.skipped,
            "field_errors": self.field_errors,
        }


def fatal_line(error: BaseException) -> str:
    return json.dumps({"type": "fatal", "error": str(error)}, ensure_ascii=False) + "\n"


def iter_ndjson(events: Iterable[Any]) -> Iterator[str]:
    """
    Render events as NDJSON lines.

    A ListingSyncError raised by the producer ends the stream with a single
    `fatal` line.
    """
    try:
        for event in events:
            yield json.dumps(event.to_dict(), ensure_ascii=False) + "\n"
    except ListingSyncError as e:
        yield fatal_line(e)
