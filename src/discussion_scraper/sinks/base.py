from __future__ import annotations
from typing import Protocol
from discussion_scraper.core.models import ExtractedRecord

class Sink(Protocol):
    """Protocol for buffered, deduplicating output sinks."""

    def admit(self, record: ExtractedRecord) -> bool: ...
    def flush(self) -> None: ...
    def close(self) -> None: ...
