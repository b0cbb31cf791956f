from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Optional, Protocol
from urllib.parse import urlsplit

from discussion_scraper.core.models import (
    INVALID_URL,
    NO_ANSWER,
    NO_AUTHOR,
    NO_TITLE,
    AnswerRecord,
    ExtractedRecord,
    RecordKind,
    SearchRecord,
)


class RecordValidator(Protocol):
    """Protocol for raw-record validators. Implementations never raise."""

    def validate(self, raw: Any) -> ExtractedRecord: ...


def clean_text(value: Any, default: str) -> str:
    """Trimmed string, or ``default`` when the value is not a non-empty string."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def clean_url(value: Any) -> str:
    """Trimmed absolute http(s) URL, or the invalid-URL sentinel."""
    if not isinstance(value, str) or not value.strip():
        return INVALID_URL
    url = value.strip()
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return INVALID_URL
    if parts.scheme not in ("http", "https") or not hostname:
        return INVALID_URL
    return url


def parse_rank(value: Any) -> int:
    """Integer rank; missing or non-numeric values become 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0


def _fields(raw: Any) -> Mapping:
    return raw if isinstance(raw, Mapping) else {}


def _first(data: Mapping, *keys: str) -> Optional[Any]:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


class SearchRecordValidator:
    """Builds SearchRecords from raw search results."""

    def validate(self, raw: Any) -> SearchRecord:
        data = _fields(raw)
        return SearchRecord(
            rank=parse_rank(data.get("rank")),
            title=clean_text(data.get("title"), NO_TITLE),
            url=clean_url(data.get("url")),
        )


class AnswerRecordValidator:
    """Builds AnswerRecords from raw answers (accepts legacy ``title``/``answer`` keys)."""

    def validate(self, raw: Any) -> AnswerRecord:
        data = _fields(raw)
        return AnswerRecord(
            author=clean_text(_first(data, "author", "title"), NO_AUTHOR),
            body=clean_text(_first(data, "body", "answer"), NO_ANSWER),
        )


_VALIDATORS = {
    RecordKind.SEARCH: SearchRecordValidator(),
    RecordKind.ANSWER: AnswerRecordValidator(),
}


def validator_for(kind: RecordKind) -> RecordValidator:
    return _VALIDATORS[RecordKind(kind)]


def validate_search(raw: Any) -> SearchRecord:
    return _VALIDATORS[RecordKind.SEARCH].validate(raw)


def validate_answer(raw: Any) -> AnswerRecord:
    return _VALIDATORS[RecordKind.ANSWER].validate(raw)


def validate(raw: Any, kind: RecordKind) -> ExtractedRecord:
    """Validate a raw record of the given kind."""
    return validator_for(kind).validate(raw)
