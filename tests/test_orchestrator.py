"""
End-to-end tests of the two-phase pipeline with a fake site and fake browser.
"""

import csv
import os
import shutil
import tempfile
import unittest
from pathlib import Path

from discussion_scraper.adapters.base import SiteAdapter
from discussion_scraper.core.factory import ComponentFactory
from discussion_scraper.core.models import DedupeScope, PipelineSettings, ProxySettings, RetrySettings
from discussion_scraper.core.orchestrator import PipelineOrchestrator
from discussion_scraper.http.proxy import DirectProxy
from discussion_scraper.utils.naming import FileNaming
from tests.fakes import FakeSessionFactory

Q = "https://www.quora.com/"


class FakeAdapter(SiteAdapter):
    """Serves canned search results and answers keyed by the navigated URL."""

    def __init__(self, search_results, answers, failing=()):
        self.search_results = search_results
        self.answers = answers
        self.failing = set(failing)

    def key(self):
        return "fake"

    def search_url(self, query, max_results):
        return f"https://search.example/?q={query}&num={max_results}"

    def accept_search_record(self, record):
        return record.url.startswith(Q) and "/profile" not in record.url

    async def extract_search_results(self, session):
        url = session.navigations[-1][0]
        query = url.split("q=", 1)[1].split("&", 1)[0]
        if query in self.failing:
            raise RuntimeError("captcha")
        return self.search_results.get(query, [])

    async def extract_answers(self, session):
        url = session.navigations[-1][0]
        if url in self.failing:
            raise RuntimeError("menu not found")
        await session.scroll_until_stable()
        return self.answers.get(url, [])


def _rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class TestPipelineOrchestrator(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.settings = PipelineSettings(
            adapter="fake",
            keywords=["first query", "second query"],
            output_dir=self.tmp_dir,
            search_concurrency=2,
            answer_concurrency=2,
            retry=RetrySettings(max_attempts=2, delay_ms=0, attempt_timeout_s=None),
        )
        self.sessions = FakeSessionFactory()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def _orchestrator(self, adapter, settings=None):
        return PipelineOrchestrator(
            settings=settings or self.settings,
            adapter=adapter,
            session_factory=self.sessions,
            proxy=DirectProxy(),
        )

    async def test_two_phases_thread_urls_into_answer_jobs(self):
        adapter = FakeAdapter(
            search_results={
                "first query": [
                    {"rank": 1, "title": "Alpha", "url": Q + "Alpha"},
                    {"rank": 2, "title": "Profile", "url": Q + "profile/Someone"},
                    {"rank": 3, "title": "Elsewhere", "url": "https://example.com/x"},
                    {"rank": 4, "title": "Beta", "url": Q + "Beta"},
                ],
                "second query": [
                    {"rank": 1, "title": "Alpha", "url": Q + "Alpha"},
                ],
            },
            answers={
                Q + "Alpha": [{"author": "Ann", "body": "one"}, {"author": "Ann", "body": "dup"}],
                Q + "Beta": [{"author": "Bob", "body": "two"}],
            },
        )

        with self.assertLogs("discussion_scraper", level="INFO"):
            report = await self._orchestrator(adapter).run()

        first = Path(self.tmp_dir) / "first-query-search-results.csv"
        second = Path(self.tmp_dir) / "second-query-search-results.csv"
        self.assertEqual(report.search.files, [first, second])
        self.assertEqual([r["url"] for r in _rows(first)], [Q + "Alpha", Q + "Beta"])
        self.assertEqual(list(_rows(first)[0].keys()), ["rank", "title", "url"])

        # duplicates across files are kept: Alpha appears in both search files
        self.assertEqual(report.urls_collected, 3)
        self.assertEqual(len(report.answers.outcomes), 3)
        self.assertEqual(report.answers.failed, 0)

        alpha = Path(self.tmp_dir) / "Alpha-Answers.csv"
        self.assertEqual(_rows(alpha), [{"title": "Ann", "answer": "one"}, {"title": "Ann", "answer": "one"}])
        self.assertEqual(_rows(Path(self.tmp_dir) / "Beta-Answers.csv"), [{"title": "Bob", "answer": "two"}])
        self.assertEqual(self.sessions.active, 0)
        self.assertTrue(all(s.closed for s in self.sessions.sessions))

    async def test_failed_query_does_not_stop_the_run(self):
        adapter = FakeAdapter(
            search_results={"second query": [{"rank": 1, "title": "Gamma", "url": Q + "Gamma"}]},
            answers={Q + "Gamma": [{"author": "Gia", "body": "three"}]},
            failing={"first query"},
        )

        with self.assertLogs("discussion_scraper", level="INFO"):
            report = await self._orchestrator(adapter).run()

        self.assertEqual(report.search.succeeded, 1)
        self.assertEqual(report.search.failed, 1)
        self.assertEqual(report.failures[0].target, "first query")
        self.assertFalse((Path(self.tmp_dir) / "first-query-search-results.csv").exists())
        self.assertEqual(report.urls_collected, 1)
        self.assertEqual(report.answers.records_written, 1)

    async def test_failed_answer_page_is_reported(self):
        adapter = FakeAdapter(
            search_results={
                "first query": [
                    {"rank": 1, "title": "Good", "url": Q + "Good"},
                    {"rank": 2, "title": "Bad", "url": Q + "Bad"},
                ]
            },
            answers={Q + "Good": [{"author": "Gus", "body": "fine"}]},
            failing={Q + "Bad"},
        )

        with self.assertLogs("discussion_scraper", level="INFO"):
            report = await self._orchestrator(adapter).run(["first query"])

        self.assertEqual(report.answers.succeeded, 1)
        self.assertEqual([f.target for f in report.failures], [Q + "Bad"])
        self.assertFalse((Path(self.tmp_dir) / "Bad-Answers.csv").exists())

    async def test_global_dedupe_scope_shares_keys_across_files(self):
        settings = PipelineSettings(
            keywords=["first query", "second query"],
            output_dir=self.tmp_dir,
            dedupe_scope=DedupeScope.GLOBAL,
            retry=RetrySettings(max_attempts=1, delay_ms=0, attempt_timeout_s=None),
        )
        adapter = FakeAdapter(
            search_results={
                "first query": [{"rank": 1, "title": "Alpha", "url": Q + "Alpha"}],
                "second query": [
                    {"rank": 1, "title": "Alpha", "url": Q + "Alpha"},
                    {"rank": 2, "title": "Beta", "url": Q + "Beta"},
                ],
            },
            answers={},
        )
        orchestrator = self._orchestrator(adapter, settings)

        with self.assertLogs("discussion_scraper", level="INFO"):
            phase = await orchestrator.run_search_phase(settings.keywords)

        urls = orchestrator.collect_urls(phase.files)
        self.assertEqual(sorted(urls), [Q + "Alpha", Q + "Beta"])

    async def test_no_queries(self):
        with self.assertLogs("discussion_scraper", level="INFO"):
            report = await self._orchestrator(FakeAdapter({}, {})).run([])
        self.assertEqual(report.search.outcomes, [])
        self.assertEqual(report.answers.outcomes, [])


class TestComponentFactory(unittest.TestCase):
    def test_builds_registered_adapter_and_proxy(self):
        settings = PipelineSettings(
            adapter="quora",
            output_dir="out",
            proxy=ProxySettings(enabled=True, api_key="k", country="gb", wait_ms=100),
        )
        built = ComponentFactory().build(settings, FakeSessionFactory())

        self.assertEqual(built.adapter.key(), "quora")
        self.assertIn("country=gb", built.proxy.wrap("https://www.quora.com/x"))
        self.assertIsInstance(built.naming, FileNaming)
        self.assertEqual(str(built.orchestrator.naming.output_dir), os.path.join("out"))


if __name__ == "__main__":
    unittest.main()
