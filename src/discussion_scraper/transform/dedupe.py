from __future__ import annotations
from typing import Protocol

from discussion_scraper.core.models import ExtractedRecord


class DedupeStrategy(Protocol):
    """Protocol for identity-key strategies."""

    def key(self, record: ExtractedRecord) -> str: ...


class TitleKeyStrategy:
    """Identity is the trimmed value of the record's ``title`` column."""

    def key(self, record: ExtractedRecord) -> str:
        return (record.identity_key or "").strip()
