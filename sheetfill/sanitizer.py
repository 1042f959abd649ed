"""Response sanitizer — strips citation markup and URLs from model output.

The model is told to return only the literal answer, but search-enabled
models like to decorate it with markdown links, "(Source: ...)" markers and
bare URLs. sanitize_response() removes all of that and returns the clean
cell value together with every URL it found, in discovery order:

    1. (Source: <url>) markers          stripped, captured
    2. [label](url) markdown links      stripped, captured, label dropped
    3. (http...) parenthesized URLs     stripped, captured
    4. (example.com) bare domains       stripped, NOT captured
    5. standalone http(s):// tokens     stripped, captured
    6. domains after a cue word         kept in text, captured as https://<domain>

Running it on its own clean output is a no-op for the text and never
yields a URL that the first pass had not already found.
"""

from __future__ import annotations

import re
from typing import Iterable

from sheetfill.models import NOT_FOUND, SanitizedText

_CITATION_RE = re.compile(r"\(\s*source:\s*(https?://[^\s)]+)\s*\)", re.IGNORECASE)
_MARKDOWN_LINK_RE = re.compile(r'\[([^\]]*)\]\(\s*([^\s)]+)(?:\s+"[^"]*")?\s*\)')
_PAREN_URL_RE = re.compile(r"\((https?://[^\s)]+)\)")
_PAREN_DOMAIN_RE = re.compile(r"\([a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\)")
_BARE_URL_RE = re.compile(r"https?://\S+")
_CUE_DOMAIN_RE = re.compile(
    r"(?:\b(?:from|via|found\s+on)\s+|\bsource:\s*)"
    r"(?P<domain>[a-z0-9][a-z0-9-]*(?:\.[a-z0-9-]+)*\.[a-z]{2,})\b",
    re.IGNORECASE,
)

_EMPTY_PARENS_RE = re.compile(r"\(\s*\)")
_WHITESPACE_RE = re.compile(r"\s+")
_DOUBLE_PERIOD_RE = re.compile(r"(?:\s*\.){2,}")
_DOUBLE_COMMA_RE = re.compile(r"(?:\s*,){2,}")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,!?;:])")
_TRAILING_OPEN_PAREN_RE = re.compile(r"(?:\s*\()+\s*$")
_LEADING_CLOSE_PAREN_RE = re.compile(r"^\s*(?:\)\s*)+")

# Characters that end a sentence rather than a URL.
_URL_TRAILING = ".,;:!?)]'\""


def dedupe_urls(urls: Iterable[str], limit: int | None = None) -> list[str]:
    """Order-preserving de-duplication, optionally truncated to `limit` entries."""
    seen: dict[str, None] = {}
    for url in urls:
        url = url.strip()
        if url and url not in seen:
            seen[url] = None
    result = list(seen)
    return result[:limit] if limit is not None else result


def sanitize_response(text: str | None) -> SanitizedText:
    """Return the clean display value and the ordered, duplicate-free source URLs."""
    if not text or not text.strip():
        return SanitizedText(clean_text=NOT_FOUND, extracted_urls=[])

    found: list[str] = []

    # tidying can expose a new removable span, e.g. "(acme .com)" -> "(acme.com)"
    cleaned = _tidy(_strip(text, found))
    while True:
        again = _tidy(_strip(cleaned, found))
        if again == cleaned:
            break
        cleaned = again

    for match in _CUE_DOMAIN_RE.finditer(cleaned):
        found.append(f"https://{match.group('domain').lower()}")

    return SanitizedText(
        clean_text=cleaned or NOT_FOUND,
        extracted_urls=dedupe_urls(found),
    )


def _strip(text: str, found: list[str]) -> str:
    """Remove citation markers, links and URLs, collecting URLs into `found`."""

    def _capture(url: str) -> str:
        found.append(url.strip())
        return ""

    text = _CITATION_RE.sub(lambda m: _capture(m.group(1)), text)
    text = _MARKDOWN_LINK_RE.sub(_markdown_replacer(found), text)
    text = _PAREN_URL_RE.sub(lambda m: _capture(m.group(1)), text)
    text = _PAREN_DOMAIN_RE.sub("", text)
    return _BARE_URL_RE.sub(_bare_url_replacer(found), text)


def _markdown_replacer(found: list[str]):
    def replace(match: re.Match[str]) -> str:
        url = match.group(2).strip()
        if url.lower().startswith(("http://", "https://")):
            found.append(url)
        return ""
    return replace


def _bare_url_replacer(found: list[str]):
    def replace(match: re.Match[str]) -> str:
        raw = match.group(0)
        url = raw.rstrip(_URL_TRAILING)
        found.append(url)
        # keep sentence punctuation that followed the URL
        return raw[len(url):]
    return replace


def _tidy(text: str) -> str:
    """Collapse whitespace and repair punctuation left behind by removals."""
    text = _EMPTY_PARENS_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    text = _DOUBLE_PERIOD_RE.sub(".", text)
    text = _DOUBLE_COMMA_RE.sub(",", text)
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _TRAILING_OPEN_PAREN_RE.sub("", text)
    text = _LEADING_CLOSE_PAREN_RE.sub("", text)
    return text.strip()
