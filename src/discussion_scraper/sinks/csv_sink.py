from __future__ import annotations

import csv
import io
import os
from pathlib import Path
from typing import List, Optional, Set, Type

from discussion_scraper.core.errors import SinkClosedError, SinkWriteError
from discussion_scraper.core.models import ExtractedRecord
from discussion_scraper.sinks.base import Sink
from discussion_scraper.transform.dedupe import DedupeStrategy, TitleKeyStrategy
from discussion_scraper.utils.logging import get_logger

IDENTITY_COLUMN = "title"


class DedupCsvSink(Sink):
    """
    Append-only CSV sink that buffers records and drops duplicates.

    Identity keys admitted once stay in ``seen_keys`` for the lifetime of the
    sink, so a key is never written twice even after the buffer is flushed.
    The header row is written only when the destination is missing or empty.
    """

    def __init__(
        self,
        path: str | Path,
        record_type: Type[ExtractedRecord],
        queue_limit: int = 50,
        seen: Optional[Set[str]] = None,
        preload_existing: bool = False,
        deduper: Optional[DedupeStrategy] = None,
    ):
        if queue_limit < 1:
            raise ValueError("queue_limit must be >= 1")

        self.path = Path(path)
        self.record_type = record_type
        self.columns = list(record_type.columns)
        self.queue_limit = queue_limit
        self.deduper = deduper or TitleKeyStrategy()
        self.seen_keys: Set[str] = seen if seen is not None else set()
        self.flush_count = 0
        self.closed = False
        self._queue: List[ExtractedRecord] = []
        self.log = get_logger("discussion_scraper.sink.csv")

        if preload_existing:
            self._load_existing_keys()

    @property
    def pending(self) -> List[ExtractedRecord]:
        return list(self._queue)

    def admit(self, record: ExtractedRecord) -> bool:
        """Buffer a record unless its identity key was already seen. Returns True when accepted."""
        if self.closed:
            raise SinkClosedError(f"sink for {self.path} is closed")

        key = self.deduper.key(record)
        if key in self.seen_keys:
            self.log.warning("Duplicate item found: %s. Item dropped.", key)
            return False

        self.seen_keys.add(key)
        self._queue.append(record)

        if len(self._queue) >= self.queue_limit:
            self.flush()
        return True

    def flush(self) -> None:
        """Append pending rows to the CSV file. A failed write keeps the batch pending."""
        if not self._queue:
            return

        batch, self._queue = self._queue, []
        try:
            self._write(batch)
        except Exception as exc:
            self._queue = batch + self._queue
            self.log.error("CSV write failed: path=%s rows=%d error=%s", self.path, len(batch), exc)
            raise SinkWriteError(str(self.path), len(batch), exc) from exc

        self.flush_count += 1

    def close(self) -> None:
        """Flush whatever is still pending. Safe to call more than once."""
        if self.closed:
            return
        self.flush()
        self.closed = True

    def _write(self, batch: List[ExtractedRecord]) -> None:
        self._ensure_parent_dir(self.path)
        write_header = not self._file_has_content(self.path)

        # Render and encode the whole batch before touching the file, so a bad row writes nothing.
        buf = io.StringIO(newline="")
        w = csv.DictWriter(buf, fieldnames=self.columns)
        if write_header:
            w.writeheader()
        for record in batch:
            w.writerow(record.to_row())
        data = buf.getvalue().encode("utf-8")

        with open(self.path, "ab") as f:
            f.write(data)

        self.log.info(
            "CSV write: path=%s rows=%d header=%s",
            self.path,
            len(batch),
            write_header,
        )

    def _load_existing_keys(self) -> None:
        if not self._file_has_content(self.path):
            return
        before = len(self.seen_keys)
        with open(self.path, "r", newline="", encoding="utf-8") as f:
            for row in csv.DictReader(f):
                key = (row.get(IDENTITY_COLUMN) or "").strip()
                if key:
                    self.seen_keys.add(key)
        self.log.info("Loaded %d existing keys from %s", len(self.seen_keys) - before, self.path)

    def _file_has_content(self, path: Path) -> bool:
        return os.path.exists(path) and os.path.getsize(path) > 0

    def _ensure_parent_dir(self, path: Path) -> None:
        parent = path.parent
        if str(parent) not in {"", "."}:
            parent.mkdir(parents=True, exist_ok=True)


def read_column(path: str | Path, column: str) -> List[str]:
    """Non-empty values of one column of a CSV file, in row order."""
    values: List[str] = []
    with open(path, "r", newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            value = (row.get(column) or "").strip()
            if value:
                values.append(value)
    return values
