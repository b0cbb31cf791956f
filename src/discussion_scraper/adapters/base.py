from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from discussion_scraper.core.models import SearchRecord
from discussion_scraper.http.session import PageSession


class SiteAdapter(ABC):
    """
    Site-specific knowledge for the two pipeline phases: how to build a search
    URL for a query, which search results to keep, and how to pull raw
    records off a loaded page.
    """

    search_wait_until: str = "domcontentloaded"
    answer_wait_until: str = "networkidle"

    @abstractmethod
    def key(self) -> str:
        """Return the adapter key."""

    @abstractmethod
    def search_url(self, query: str, max_results: int) -> str:
        """Return the search page URL for a query."""

    @abstractmethod
    def accept_search_record(self, record: SearchRecord) -> bool:
        """Return True when a search result points at a discussion page."""

    @abstractmethod
    async def extract_search_results(self, session: PageSession) -> List[Dict[str, Any]]:
        """Return raw ``{rank, title, url}`` dicts from a loaded search page."""

    @abstractmethod
    async def extract_answers(self, session: PageSession) -> List[Dict[str, Any]]:
        """Return raw ``{author, body}`` dicts from a loaded discussion page."""
