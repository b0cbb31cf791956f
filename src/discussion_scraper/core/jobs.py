from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from discussion_scraper.core.errors import EmptyResultError, SinkWriteError
from discussion_scraper.core.models import (
    AttemptEvent,
    ExtractedRecord,
    Failure,
    JobOutcome,
    JobStatus,
    RetryState,
    Success,
)
from discussion_scraper.http.policies import RetryPolicy, backoff_sleep
from discussion_scraper.http.session import PageSession, SessionFactory
from discussion_scraper.sinks.base import Sink
from discussion_scraper.transform.validators import RecordValidator
from discussion_scraper.utils.logging import get_logger

ExtractFn = Callable[[PageSession], Awaitable[Sequence[Any]]]
RecordFilter = Callable[[ExtractedRecord], bool]


def initial_state(max_attempts: int) -> RetryState:
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    return RetryState(JobStatus.PENDING, max_attempts)


def transition(state: RetryState, event: AttemptEvent) -> RetryState:
    """
    Pure retry state machine.

    PENDING --STARTED--> RUNNING
    RUNNING --SUCCEEDED--> SUCCEEDED
    RUNNING --FAILED--> RUNNING while attempts remain, else FAILED
    """
    if state.status.terminal:
        raise ValueError(f"job already {state.status.value}; cannot apply {event.value}")

    if state.status is JobStatus.PENDING:
        if event is AttemptEvent.STARTED:
            return RetryState(JobStatus.RUNNING, state.attempts_left)
        raise ValueError(f"pending job cannot apply {event.value}")

    if event is AttemptEvent.SUCCEEDED:
        return RetryState(JobStatus.SUCCEEDED, state.attempts_left)
    if event is AttemptEvent.FAILED:
        left = max(0, state.attempts_left - 1)
        return RetryState(JobStatus.RUNNING if left else JobStatus.FAILED, left)
    raise ValueError(f"running job cannot apply {event.value}")


class RetryableJob:
    """
    One extraction unit: open a page session, navigate and extract with bounded
    retries, then push validated records through the job's own sink.

    Awaiting the job (``await job()``) always resolves to a JobOutcome for
    retry exhaustion and sink failures; the session is released on every path.
    """

    def __init__(
        self,
        target: str,
        navigate_url: str,
        extract: ExtractFn,
        sink: Sink,
        validator: RecordValidator,
        session_factory: SessionFactory,
        retry: Optional[RetryPolicy] = None,
        require_records: bool = False,
        record_filter: Optional[RecordFilter] = None,
        wait_until: str = "domcontentloaded",
    ):
        """
        Args:
            target: Query or URL this job is responsible for (used in outcomes and logs).
            navigate_url: URL the browser navigates to (usually proxy-wrapped).
            extract: Page-specific extraction, returning raw records.
            sink: Destination owned by this job; closed when the job finishes.
            validator: Turns raw records into domain records.
            session_factory: Source of page sessions.
            retry: Attempt bound, delay and per-attempt deadline.
            require_records: Treat an empty extraction as a failed attempt.
            record_filter: Keeps only validated records it returns True for.
            wait_until: Navigation wait policy.
        """
        self.target = target
        self.navigate_url = navigate_url
        self.extract = extract
        self.sink = sink
        self.validator = validator
        self.session_factory = session_factory
        self.retry = retry or RetryPolicy()
        self.require_records = require_records
        self.record_filter = record_filter
        self.wait_until = wait_until
        self.state = initial_state(self.retry.max_attempts)
        self.attempts = 0
        self.last_error: Optional[BaseException] = None
        self.log = get_logger("discussion_scraper.job")

    async def __call__(self) -> JobOutcome:
        return await self.run()

    async def run(self) -> JobOutcome:
        self.state = transition(self.state, AttemptEvent.STARTED)
        raw_records: List[Any] = []

        async with self.session_factory.open() as session:
            while self.state.status is JobStatus.RUNNING:
                self.attempts += 1
                try:
                    raw_records = await self._attempt(session)
                except Exception as exc:
                    self.last_error = exc
                    self.state = transition(self.state, AttemptEvent.FAILED)
                    self.log.warning(
                        "Error scraping %s (attempt %d): %s. Retries left: %d",
                        self.target,
                        self.attempts,
                        str(exc) or type(exc).__name__,
                        self.state.attempts_left,
                    )
                    if self.state.status is JobStatus.RUNNING:
                        await backoff_sleep(self.retry, self.attempts - 1)
                    continue
                self.state = transition(self.state, AttemptEvent.SUCCEEDED)

        if self.state.status is JobStatus.FAILED:
            self.log.error("Failed to scrape %s after %d attempts", self.target, self.attempts)
            outcome: JobOutcome = Failure(
                target=self.target,
                reason=f"all {self.attempts} attempts failed: {self.last_error!r}",
                attempts=self.attempts,
            )
        else:
            try:
                count = self._admit(raw_records)
            except Exception as exc:
                self.log.exception("Storing records for %s failed", self.target)
                outcome = Failure(target=self.target, reason=f"storing records failed: {exc!r}", attempts=self.attempts)
            else:
                self.log.info("Successfully scraped %d records for %s", count, self._destination())
                outcome = Success(target=self.target, count=count)

        # records admitted before any error above still get flushed
        try:
            self.sink.close()
        except SinkWriteError as exc:
            self.log.error("Output for %s could not be written: %s", self.target, exc)
            return Failure(target=self.target, reason=str(exc), attempts=self.attempts)
        return outcome

    async def _attempt(self, session: PageSession) -> List[Any]:
        timeout = self.retry.attempt_timeout_s
        if timeout:
            return await asyncio.wait_for(self._navigate_and_extract(session), timeout=timeout)
        return await self._navigate_and_extract(session)

    async def _navigate_and_extract(self, session: PageSession) -> List[Any]:
        await session.navigate(self.navigate_url, self.wait_until)
        records = list(await self.extract(session) or [])
        if self.require_records and not records:
            raise EmptyResultError(f"no records extracted from {self.target}")
        return records

    def _admit(self, raw_records: Sequence[Any]) -> int:
        admitted = 0
        for raw in raw_records:
            record = self.validator.validate(raw)
            if self.record_filter is not None and not self.record_filter(record):
                continue
            try:
                if self.sink.admit(record):
                    admitted += 1
            except SinkWriteError as exc:
                # record is admitted; its batch stays pending for the final flush
                admitted += 1
                self.log.error("Auto-flush failed for %s: %s", self.target, exc)
        return admitted

    def _destination(self) -> str:
        path = getattr(self.sink, "path", None)
        return getattr(path, "name", None) or str(path or self.target)
