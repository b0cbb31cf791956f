from __future__ import annotations

from typing import Protocol
from urllib.parse import urlencode

from discussion_scraper.core.models import ProxySettings

SCRAPEOPS_ENDPOINT = "https://proxy.scrapeops.io/v1/"


class UrlProxy(Protocol):
    """Turns a target URL into the URL the browser should navigate to."""

    def wrap(self, url: str) -> str: ...


class DirectProxy:
    """No proxy: navigate to the target URL itself."""

    def wrap(self, url: str) -> str:
        return url


class ScrapeOpsProxy:
    """Routes navigation through the ScrapeOps proxy with a country and render wait."""

    def __init__(self, api_key: str, country: str = "us", wait_ms: int = 5000):
        if not api_key:
            raise ValueError("ScrapeOps proxy requires an api_key")
        self.api_key = api_key
        self.country = country
        self.wait_ms = wait_ms

    def wrap(self, url: str) -> str:
        params = {
            "api_key": self.api_key,
            "url": url,
            "country": self.country,
            "wait": self.wait_ms,
        }
        return f"{SCRAPEOPS_ENDPOINT}?{urlencode(params)}"


def build_proxy(settings: ProxySettings) -> UrlProxy:
    if settings.enabled:
        return ScrapeOpsProxy(settings.api_key or "", country=settings.country, wait_ms=settings.wait_ms)
    return DirectProxy()
