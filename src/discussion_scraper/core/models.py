from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

NO_TITLE = "No title"
INVALID_URL = "Invalid URL"
NO_AUTHOR = "No author"
NO_ANSWER = "No answer"


class RecordKind(str, Enum):
    """Record variants produced by the two pipeline phases."""

    SEARCH = "search"
    ANSWER = "answer"


class DedupeScope(str, Enum):
    """Lifetime of the identity-key set used to drop duplicates."""

    PER_SINK = "per_sink"
    GLOBAL = "global"


@dataclass(frozen=True)
class SearchRecord:
    """One search engine result pointing at a discussion page."""

    columns: ClassVar[Tuple[str, ...]] = ("rank", "title", "url")

    rank: int = 0
    title: str = NO_TITLE
    url: str = INVALID_URL

    @property
    def identity_key(self) -> str:
        return self.title.strip()

    def to_row(self) -> Dict[str, Any]:
        return {"rank": self.rank, "title": self.title, "url": self.url}


@dataclass(frozen=True)
class AnswerRecord:
    """One answer on a discussion page. The author is stored in the ``title`` column."""

    columns: ClassVar[Tuple[str, ...]] = ("title", "answer")

    author: str = NO_AUTHOR
    body: str = NO_ANSWER

    @property
    def identity_key(self) -> str:
        return self.author.strip()

    def to_row(self) -> Dict[str, Any]:
        return {"title": self.author, "answer": self.body}


ExtractedRecord = Union[SearchRecord, AnswerRecord]


@dataclass(frozen=True)
class Success:
    """Job finished; ``count`` records were admitted to its sink."""

    target: str
    count: int = 0

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Job gave up; reported, never raised."""

    target: str
    reason: str
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return False


JobOutcome = Union[Success, Failure]


class JobStatus(str, Enum):
    """Lifecycle of a retryable job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class AttemptEvent(str, Enum):
    """Events fed to the retry state machine."""

    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryState:
    """Snapshot of a job's retry state machine."""

    status: JobStatus
    attempts_left: int


@dataclass(frozen=True)
class RetrySettings:
    """Retry behaviour shared by every job of a run."""

    max_attempts: int = 3
    delay_ms: int = 2000
    backoff_factor: float = 1.0
    jitter_ms: int = 0
    attempt_timeout_s: Optional[float] = 120.0


@dataclass(frozen=True)
class ProxySettings:
    """Proxy routing for page navigation."""

    enabled: bool = False
    api_key: Optional[str] = None
    country: str = "us"
    wait_ms: int = 5000


@dataclass(frozen=True)
class BrowserSettings:
    """Browser launch options."""

    headless: bool = True
    viewport_width: int = 1366
    viewport_height: int = 768
    timeout_s: int = 60


@dataclass(frozen=True)
class PipelineSettings:
    """Configuration for a two-phase discovery + extraction run."""

    adapter: str = "quora"
    keywords: List[str] = field(default_factory=list)
    output_dir: str = "output"
    max_search_results: int = 4
    search_concurrency: int = 2
    answer_concurrency: int = 2
    storage_queue_limit: int = 50
    dedupe_scope: DedupeScope = DedupeScope.PER_SINK
    preload_existing: bool = False
    retry: RetrySettings = field(default_factory=RetrySettings)
    proxy: ProxySettings = field(default_factory=ProxySettings)
    browser: BrowserSettings = field(default_factory=BrowserSettings)


@dataclass
class PhaseReport:
    """Outcomes and output files of one pipeline phase."""

    outcomes: List[JobOutcome] = field(default_factory=list)
    files: List[Path] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def records_written(self) -> int:
        return sum(o.count for o in self.outcomes if isinstance(o, Success))


@dataclass
class PipelineReport:
    """Summary report of a pipeline run."""

    started_at_utc: str = ""
    finished_at_utc: str = ""
    search: PhaseReport = field(default_factory=PhaseReport)
    answers: PhaseReport = field(default_factory=PhaseReport)
    urls_collected: int = 0

    @property
    def failures(self) -> List[Failure]:
        return [o for o in self.search.outcomes + self.answers.outcomes if isinstance(o, Failure)]
