from __future__ import annotations

from typing import Dict, List

from discussion_scraper.adapters.base import SiteAdapter

_ADAPTERS: Dict[str, SiteAdapter] = {}


def register(adapter: SiteAdapter) -> None:
    """Register a site adapter; re-registering a key replaces the previous adapter."""
    _ADAPTERS[adapter.key()] = adapter


def get(key: str) -> SiteAdapter:
    """Retrieve a registered adapter by key."""
    try:
        return _ADAPTERS[key]
    except KeyError:
        known = ", ".join(sorted(_ADAPTERS)) or "none"
        raise KeyError(f"Adapter not registered: {key} (registered: {known})") from None


def get_registered_adapters() -> List[SiteAdapter]:
    return list(_ADAPTERS.values())
