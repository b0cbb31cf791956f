from __future__ import annotations

from typing import Any, Dict, List
from urllib.parse import quote

from discussion_scraper.adapters.base import SiteAdapter
from discussion_scraper.core.errors import AttemptFailedError
from discussion_scraper.core.models import SearchRecord
from discussion_scraper.http.session import PageSession

QUORA_PREFIX = "https://www.quora.com/"

SORT_MENU_BUTTON = 'button[aria-haspopup="menu"][role="button"]'
SORT_MENU = ".puppeteer_test_popover_menu"
SORT_MENU_ITEM = ".q-click-wrapper.puppeteer_test_popover_item"

_SEARCH_RESULTS_JS = """
(results) => results.map((result, index) => {
    const heading = result.querySelector('h3');
    const link = result.querySelector('a');
    return {
        rank: index + 1,
        title: heading ? heading.innerText : null,
        url: link ? link.href : null,
    };
})
"""

_ANSWERS_JS = """
() => Array.from(
    document.querySelectorAll('[class^="q-box dom_annotate_question_answer_item_"]')
).map((item) => {
    const readMore = item.querySelector('button.puppeteer_test_read_more_button');
    if (readMore) {
        readMore.click();
    }
    const header = item.querySelector('.q-box.spacing_log_answer_header');
    const content = item.querySelector('.q-box.spacing_log_answer_content.puppeteer_test_answer_content');
    return {
        author: header ? header.innerText.split("\\n")[0] : null,
        body: content ? content.innerText : null,
    };
})
"""


class QuoraAdapter(SiteAdapter):
    """
    Finds Quora questions through Google (``site:quora.com``) and extracts the
    answers on each question page.

    Answer pages need a UI sequence before extraction: open the sort menu,
    choose a sort option, then scroll until lazy-loaded answers stop appearing.
    """

    search_wait_until = "domcontentloaded"
    answer_wait_until = "networkidle"

    def __init__(self, sort_option_index: int = 1):
        self.sort_option_index = sort_option_index

    def key(self) -> str:
        return "quora"

    def search_url(self, query: str, max_results: int) -> str:
        return f"https://www.google.com/search?q={quote(query, safe='!*()')}+site:quora.com&num={max_results}"

    def accept_search_record(self, record: SearchRecord) -> bool:
        return record.url.startswith(QUORA_PREFIX) and "/profile" not in record.url

    async def extract_search_results(self, session: PageSession) -> List[Dict[str, Any]]:
        return await session.page.eval_on_selector_all("#rso .g", _SEARCH_RESULTS_JS)

    async def extract_answers(self, session: PageSession) -> List[Dict[str, Any]]:
        page = session.page
        await session.click(SORT_MENU_BUTTON)
        await page.wait_for_selector(SORT_MENU)

        options = await page.query_selector_all(SORT_MENU_ITEM)
        if len(options) <= self.sort_option_index:
            raise AttemptFailedError(f"sort menu has {len(options)} options; wanted index {self.sort_option_index}")
        await options[self.sort_option_index].click()

        await session.scroll_until_stable()
        return await page.evaluate(_ANSWERS_JS)
