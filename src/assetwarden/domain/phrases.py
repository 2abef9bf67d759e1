"""Phrase families used to read moderation state off the listing page.

The families are scanned in a fixed order: decline phrases first, then
deletion vocabulary, then pending phrases. A decline phrase anywhere on the
page wins regardless of what else the page says.
"""

from __future__ import annotations

import html
import re
from typing import Final

from .model import ListingSignal

_FLAGS: Final = re.IGNORECASE | re.DOTALL

DECLINE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(pattern, _FLAGS)
    for pattern in (
        r"this item is not available",
        r"item is not available",
        r"this item is unavailable",
        r"not available for sale",
        r"no longer available",
        r"\bdeclined\b",
        r"\brejected\b",
        r"\bblocked\b",
        r"\bdenied\b",
    )
)

DELETION_KEYWORDS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(pattern, _FLAGS)
    for pattern in (
        r"\bdeleted\b",
        r"\bremoved\b",
        r"\bno longer\b",
        r"\bunavailable\b",
    )
)

# keywords only count when an item/content/asset noun sits within this window
DELETION_CONTEXT_WINDOW: Final[int] = 50
_DELETION_CONTEXT: Final = re.compile(r"\b(?:item|content|asset|this)\b", _FLAGS)

STRICT_DELETION_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(pattern, _FLAGS)
    for pattern in (
        r"\bthis\b.{0,80}?\bhas been\b.{0,80}?\bdeleted\b",
        r"\bthis\b.{0,80}?\bwas\b.{0,80}?\bdeleted\b",
        r"\bcontent\b.{0,80}?\bhas been\b.{0,80}?\bremoved\b",
        r"\bitem\b.{0,80}?\bhas been\b.{0,80}?\bremoved\b",
    )
)

PENDING_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(pattern, _FLAGS)
    for pattern in (
        r"\bpending\b",
        r"\bunder review\b",
        r"\bbeing reviewed\b",
        r"\bin review\b",
        r"\breviewing\b",
        r"\bawaiting\b",
    )
)

_SCRIPT_OR_STYLE: Final = re.compile(r"<(script|style|noscript)\b.*?</\1\s*>", _FLAGS)
_TAG: Final = re.compile(r"<[^>]+>")
_WHITESPACE: Final = re.compile(r"\s+")
_H1: Final = re.compile(r"<h1[^>]*>([^<]+)</h1>", re.IGNORECASE)
_TITLE: Final = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)


def visible_text(markup: str) -> str:
    """Reduce an HTML document to the text a visitor would read."""

    stripped = _SCRIPT_OR_STYLE.sub(" ", markup)
    stripped = _TAG.sub(" ", stripped)
    return _WHITESPACE.sub(" ", html.unescape(stripped)).strip()


def extract_title(markup: str) -> str | None:
    match = _H1.search(markup) or _TITLE.search(markup)
    if match is None:
        return None
    title = html.unescape(match.group(1)).strip()
    return title or None


def matches_decline(text: str) -> bool:
    return any(pattern.search(text) for pattern in DECLINE_PATTERNS)


def matches_deletion(text: str) -> bool:
    for pattern in DELETION_KEYWORDS:
        for match in pattern.finditer(text):
            start = max(0, match.start() - DELETION_CONTEXT_WINDOW)
            end = min(len(text), match.end() + DELETION_CONTEXT_WINDOW)
            if _DELETION_CONTEXT.search(text, start, end):
                return True
    return False


def confirms_deletion(text: str) -> bool:
    """Stricter re-check used when the asset is still publicly downloadable."""

    return any(pattern.search(text) for pattern in STRICT_DELETION_PATTERNS)


def matches_pending(text: str) -> bool:
    return any(pattern.search(text) for pattern in PENDING_PATTERNS)


def scan_listing_text(text: str) -> ListingSignal:
    if matches_decline(text):
        return ListingSignal.DECLINE_PHRASE
    if matches_deletion(text):
        return ListingSignal.DELETION_PHRASE
    if matches_pending(text):
        return ListingSignal.PENDING_PHRASE
    return ListingSignal.NONE
