import hashlib
import re
import unicodedata
from typing import Any

_WS = re.compile(r"\s+")


def stable_hash(text: str, length: int = 16) -> str:
    """Short, stable hex digest of text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def normalize_text(value: Any) -> str:
    """NFKC-normalized, trimmed, single-spaced, lowercased text (empty for None)."""
    if value is None:
        return ""
    text = unicodedata.normalize("NFKC", str(value))
    return _WS.sub(" ", text).strip().lower()
