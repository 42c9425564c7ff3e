"""Content fingerprints for article deduplication.

A fingerprint depends only on what an article says and who published it,
never on the provider that delivered it or on provider formatting (HTML,
whitespace, case, NewsAPI truncation markers). The same story fetched from
two providers therefore maps to the same fingerprint.
"""

import hashlib
import html
import re
import unicodedata

_TAG_RE = re.compile(r"<[^>]+>")
_TRUNCATION_RE = re.compile(r"\s*(?:…|\.\.\.)?\s*\[\+\d+ chars\]\s*$")
_NON_WORD_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SPACE_RE = re.compile(r"\s+")


def strip_markup(text: str) -> str:
    """Remove HTML tags/entities and provider truncation markers."""
    text = html.unescape(text or "")
    text = _TAG_RE.sub(" ", text)
    text = _TRUNCATION_RE.sub("", text)
    return _SPACE_RE.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """Lowercase, punctuation-free, single-spaced form of ``text``."""
    text = unicodedata.normalize("NFKC", strip_markup(text)).casefold()
    text = _NON_WORD_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


def publisher_key(name: str) -> str:
    """Provider-independent publisher identity, e.g. "BBC News" -> "bbcnews"."""
    return normalize_text(name).replace(" ", "")


def content_fingerprint(title: str, body: str, source_id: str, body_chars: int = 500) -> str:
    """Deterministic SHA-256 over normalized title, body prefix and publisher.

    Args:
        title: Article headline
        body: Article body or description
        source_id: Publisher key (see ``publisher_key``)
        body_chars: Characters of normalized body that take part in the hash

    Returns:
        Hex digest
    """
    parts = (
        normalize_text(title),
        normalize_text(body)[:body_chars],
        publisher_key(source_id),
    )
    return hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()
