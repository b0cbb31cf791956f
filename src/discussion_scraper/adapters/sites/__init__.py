from discussion_scraper.adapters.registry import register
from discussion_scraper.adapters.sites.quora import QuoraAdapter


def register_all() -> None:
    register(QuoraAdapter())
