from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Set

from discussion_scraper.adapters.base import SiteAdapter
from discussion_scraper.core.jobs import RetryableJob
from discussion_scraper.core.models import (
    AnswerRecord,
    DedupeScope,
    PhaseReport,
    PipelineReport,
    PipelineSettings,
    SearchRecord,
)
from discussion_scraper.core.scheduler import ConcurrencyScheduler
from discussion_scraper.http.policies import RetryPolicy
from discussion_scraper.http.proxy import UrlProxy
from discussion_scraper.http.session import SessionFactory
from discussion_scraper.sinks.csv_sink import DedupCsvSink, read_column
from discussion_scraper.transform.validators import AnswerRecordValidator, SearchRecordValidator
from discussion_scraper.utils.logging import get_logger
from discussion_scraper.utils.naming import FileNaming
from discussion_scraper.utils.time import utc_now_iso


class PipelineOrchestrator:
    """
    Two-phase run: discover discussion URLs for each query, then extract the
    answers on every discovered URL.

    Phase one writes one search-results file per query; the URL column of those
    files (in query order) becomes the input of phase two, which writes one
    answers file per URL.
    """

    def __init__(
        self,
        settings: PipelineSettings,
        adapter: SiteAdapter,
        session_factory: SessionFactory,
        proxy: UrlProxy,
        naming: Optional[FileNaming] = None,
    ):
        self.settings = settings
        self.adapter = adapter
        self.session_factory = session_factory
        self.proxy = proxy
        self.naming = naming or FileNaming(settings.output_dir)
        self.retry = RetryPolicy.from_settings(settings.retry)
        self.log = get_logger("discussion_scraper.orchestrator")

    async def run(self, queries: Optional[Sequence[str]] = None) -> PipelineReport:
        queries = list(self.settings.keywords if queries is None else queries)
        report = PipelineReport(started_at_utc=utc_now_iso())

        self.log.info("Started scraping search results: queries=%d", len(queries))
        report.search = await self.run_search_phase(queries)

        urls = self.collect_urls(report.search.files)
        report.urls_collected = len(urls)

        self.log.info("Started scraping answers: urls=%d", len(urls))
        report.answers = await self.run_answer_phase(urls)

        report.finished_at_utc = utc_now_iso()
        self.log.info(
            "Pipeline done: search ok=%d failed=%d, answers ok=%d failed=%d, answer rows=%d",
            report.search.succeeded,
            report.search.failed,
            report.answers.succeeded,
            report.answers.failed,
            report.answers.records_written,
        )
        return report

    async def run_search_phase(self, queries: Sequence[str]) -> PhaseReport:
        seen = self._shared_seen()
        jobs: List[RetryableJob] = []
        files: List[Path] = []
        for query in queries:
            path = self.naming.search_file(query)
            files.append(path)
            jobs.append(
                RetryableJob(
                    target=query,
                    navigate_url=self.proxy.wrap(self.adapter.search_url(query, self.settings.max_search_results)),
                    extract=self.adapter.extract_search_results,
                    sink=self._sink(path, SearchRecord, seen),
                    validator=SearchRecordValidator(),
                    session_factory=self.session_factory,
                    retry=self.retry,
                    require_records=True,
                    record_filter=self.adapter.accept_search_record,
                    wait_until=self.adapter.search_wait_until,
                )
            )

        outcomes = await ConcurrencyScheduler(self.settings.search_concurrency).run_all(jobs)
        return PhaseReport(outcomes=outcomes, files=files)

    def collect_urls(self, files: Sequence[Path]) -> List[str]:
        """URL column of every existing search file, file order then row order; duplicates kept."""
        urls: List[str] = []
        for path in files:
            if not Path(path).exists():
                self.log.info("No search results file for %s; skipping", path)
                continue
            urls.extend(read_column(path, "url"))
        return urls

    async def run_answer_phase(self, urls: Sequence[str]) -> PhaseReport:
        seen = self._shared_seen()
        jobs: List[RetryableJob] = []
        files: List[Path] = []
        for url in urls:
            path = self.naming.answer_file(url)
            files.append(path)
            jobs.append(
                RetryableJob(
                    target=url,
                    navigate_url=self.proxy.wrap(url),
                    extract=self.adapter.extract_answers,
                    sink=self._sink(path, AnswerRecord, seen),
                    validator=AnswerRecordValidator(),
                    session_factory=self.session_factory,
                    retry=self.retry,
                    wait_until=self.adapter.answer_wait_until,
                )
            )

        outcomes = await ConcurrencyScheduler(self.settings.answer_concurrency).run_all(jobs)
        return PhaseReport(outcomes=outcomes, files=files)

    def _sink(self, path: Path, record_type, seen: Optional[Set[str]]) -> DedupCsvSink:
        return DedupCsvSink(
            path,
            record_type,
            queue_limit=self.settings.storage_queue_limit,
            seen=seen,
            preload_existing=self.settings.preload_existing,
        )

    def _shared_seen(self) -> Optional[Set[str]]:
        if self.settings.dedupe_scope == DedupeScope.GLOBAL:
            return set()
        return None
