from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import unquote, urlsplit

from discussion_scraper.utils.hashing import normalize_text, stable_hash

_WS = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^0-9A-Za-z._-]+")


class FileNaming:
    """
    Output file naming policy.

    File names double as the join key between the search phase and the
    answer phase, so the same query or URL always maps to the same path.
    """

    def __init__(self, output_dir: str | Path = "."):
        self.output_dir = Path(output_dir)

    def search_file(self, query: str) -> Path:
        """Path of the search results file for a query."""
        slug = _WS.sub("-", query.strip()).lower()
        slug = _UNSAFE.sub("_", slug) or stable_hash(normalize_text(query))
        return self.output_dir / f"{slug}-search-results.csv"

    def answer_file(self, url: str) -> Path:
        """Path of the answers file for a discussion URL (named after its last path segment)."""
        path = urlsplit(url).path.rstrip("/")
        segment = unquote(path.rsplit("/", 1)[-1]) if path else ""
        segment = _UNSAFE.sub("_", segment).strip("._")
        if not segment:
            segment = stable_hash(normalize_text(url))
        return self.output_dir / f"{segment}-Answers.csv"
