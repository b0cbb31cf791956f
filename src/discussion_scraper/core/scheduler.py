from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Sequence

from discussion_scraper.core.models import Failure, JobOutcome
from discussion_scraper.utils.logging import get_logger

JobFn = Callable[[], Awaitable[JobOutcome]]


class ConcurrencyScheduler:
    """
    Runs jobs with at most ``limit`` of them unsettled at any time.

    Jobs start in input order; a new job starts as soon as any running job
    settles. A job that raises is reported as a Failure, so one job never
    aborts or skips the others.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("concurrency limit must be >= 1")
        self.limit = limit
        self.started = 0
        self.in_flight = 0
        self.peak_in_flight = 0
        self.log = get_logger("discussion_scraper.scheduler")

    async def run_all(self, jobs: Sequence[JobFn]) -> List[JobOutcome]:
        if not jobs:
            return []

        permits = asyncio.Semaphore(self.limit)
        tasks: List[asyncio.Task] = []

        for job in jobs:
            await permits.acquire()
            self.started += 1
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            tasks.append(asyncio.create_task(self._run_one(job, permits)))

        outcomes = await asyncio.gather(*tasks)
        self.log.info(
            "Scheduler done: jobs=%d ok=%d failed=%d limit=%d peak=%d",
            len(outcomes),
            sum(1 for o in outcomes if o.ok),
            sum(1 for o in outcomes if not o.ok),
            self.limit,
            self.peak_in_flight,
        )
        return list(outcomes)

    async def _run_one(self, job: JobFn, permits: asyncio.Semaphore) -> JobOutcome:
        target = str(getattr(job, "target", None) or getattr(job, "__name__", repr(job)))
        try:
            return await job()
        except Exception as exc:
            self.log.exception("Job %s raised unexpectedly", target)
            return Failure(target=target, reason=repr(exc))
        finally:
            self.in_flight -= 1
            permits.release()


async def run_all(jobs: Sequence[JobFn], limit: int) -> List[JobOutcome]:
    """Run ``jobs`` with at most ``limit`` in flight; one outcome per job, in input order."""
    return await ConcurrencyScheduler(limit).run_all(jobs)
