"""
Contract tests for site adapters.
Ensures all adapters satisfy basic expectations.
"""

import unittest
from unittest.mock import AsyncMock, Mock

from discussion_scraper.adapters.registry import get, get_registered_adapters
from discussion_scraper.adapters.sites import register_all
from discussion_scraper.adapters.sites.quora import SORT_MENU, SORT_MENU_BUTTON, SORT_MENU_ITEM, QuoraAdapter
from discussion_scraper.core.errors import AttemptFailedError
from discussion_scraper.core.models import SearchRecord
from tests.fakes import FakeSession


class TestAdapterContracts(unittest.TestCase):
    """Test that all adapters satisfy their contracts."""

    def setUp(self):
        register_all()

    def test_all_adapters_have_unique_keys(self):
        keys = []
        for adapter in get_registered_adapters():
            key = adapter.key()
            self.assertIsInstance(key, str)
            self.assertTrue(len(key.strip()) > 0, f"Adapter {adapter.__class__.__name__} has empty key")
            self.assertNotIn(key, keys, f"Duplicate adapter key: {key}")
            keys.append(key)

    def test_all_adapters_have_wait_policies(self):
        valid = {"load", "domcontentloaded", "networkidle", "commit"}
        for adapter in get_registered_adapters():
            self.assertIn(adapter.search_wait_until, valid)
            self.assertIn(adapter.answer_wait_until, valid)

    def test_unknown_adapter(self):
        with self.assertRaises(KeyError):
            get("does-not-exist")


class TestQuoraAdapter(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.adapter = QuoraAdapter()

    def test_search_url(self):
        self.assertEqual(
            self.adapter.search_url("What is nextTick in NodeJS", 4),
            "https://www.google.com/search?q=What%20is%20nextTick%20in%20NodeJS+site:quora.com&num=4",
        )

    def test_accepts_only_quora_questions(self):
        accept = self.adapter.accept_search_record
        self.assertTrue(accept(SearchRecord(1, "Q", "https://www.quora.com/What-is-it")))
        self.assertFalse(accept(SearchRecord(1, "P", "https://www.quora.com/profile/Someone")))
        self.assertFalse(accept(SearchRecord(1, "S", "https://stackoverflow.com/q/1")))
        self.assertFalse(accept(SearchRecord(1, "I", "Invalid URL")))

    async def test_extract_search_results(self):
        page = Mock()
        page.eval_on_selector_all = AsyncMock(return_value=[{"rank": 1, "title": "T", "url": "U"}])

        results = await self.adapter.extract_search_results(FakeSession(page))

        self.assertEqual(results, [{"rank": 1, "title": "T", "url": "U"}])
        self.assertEqual(page.eval_on_selector_all.await_args.args[0], "#rso .g")

    async def test_extract_answers_runs_ui_sequence(self):
        page = Mock()
        page.wait_for_selector = AsyncMock()
        options = [Mock(click=AsyncMock()), Mock(click=AsyncMock())]
        page.query_selector_all = AsyncMock(return_value=options)
        page.evaluate = AsyncMock(return_value=[{"author": "A", "body": "B"}])
        session = FakeSession(page)

        answers = await self.adapter.extract_answers(session)

        self.assertEqual(answers, [{"author": "A", "body": "B"}])
        self.assertEqual(session.clicks, [SORT_MENU_BUTTON])
        page.wait_for_selector.assert_awaited_once_with(SORT_MENU)
        page.query_selector_all.assert_awaited_once_with(SORT_MENU_ITEM)
        options[1].click.assert_awaited_once()
        options[0].click.assert_not_awaited()
        self.assertEqual(session.scrolls, 1)

    async def test_missing_sort_option_fails_the_attempt(self):
        page = Mock()
        page.wait_for_selector = AsyncMock()
        page.query_selector_all = AsyncMock(return_value=[Mock()])
        page.evaluate = AsyncMock()

        with self.assertRaises(AttemptFailedError):
            await self.adapter.extract_answers(FakeSession(page))
        page.evaluate.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
