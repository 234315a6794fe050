"""
Anti-repetition for coaching copy.

Each session keeps a short history of the copy it has shown.  A new
message is *too similar* when, against any of the most recent messages,

- the trigram Jaccard similarity is ≥ 0.32, or
- at least 3 word bigrams are shared.

Tokens are lower-case words with every non-alphanumeric character treated
as a separator.  On a hit the caller may ask for one rewrite; a rewrite
that is still too similar, or that fails, leaves the original in place.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Callable, Iterable, Iterator, Optional, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_HISTORY = 30
COMPARE_RECENT = 10
TRIGRAM_SIMILARITY = 0.32
BIGRAM_OVERLAP = 3

REWRITE_HINT = (
    "Rephrase with different verbs and connectors. "
    "Keep meaning and length; avoid prior bigrams."
)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


class CoachCopy(BaseModel):
    """One piece of shown copy."""

    message: str
    cta: str = ""
    secondary: Optional[str] = None
    science: Optional[str] = None


# ======================================================================
# Similarity
# ======================================================================


def _tokens(text: str) -> list[str]:
    return [t for t in _NON_ALNUM_RE.split(text.lower()) if t]


def _ngrams(tokens: list[str], n: int) -> set[tuple[str, ...]]:
    return {tuple(tokens[i:i + n]) for i in range(len(tokens) - n + 1)}


def _jaccard(a: set, b: set) -> float:
    union = a | b
    return len(a & b) / len(union) if union else 0.0


def too_similar(text: str, recent: Iterable[str]) -> bool:
    """True if ``text`` repeats any message in ``recent`` too closely."""
    tokens = _tokens(text)
    tri, bi = _ngrams(tokens, 3), _ngrams(tokens, 2)
    for past in recent:
        past_tokens = _tokens(past)
        if _jaccard(tri, _ngrams(past_tokens, 3)) >= TRIGRAM_SIMILARITY:
            return True
        if len(bi & _ngrams(past_tokens, 2)) >= BIGRAM_OVERLAP:
            return True
    return False


# ======================================================================
# History
# ======================================================================


class CopyHistory:
    """Bounded newest-first history of shown copy.  Not thread-safe on its own."""

    def __init__(self, maxlen: int = MAX_HISTORY):
        self._items: deque[CoachCopy] = deque(maxlen=maxlen)

    def push(self, copy: CoachCopy) -> None:
        self._items.appendleft(copy)

    def recent_messages(self, n: int = COMPARE_RECENT) -> list[str]:
        return [c.message for c in list(self._items)[:n]]

    def too_similar(self, text: str) -> bool:
        return too_similar(text, self.recent_messages())

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CoachCopy]:
        return iter(self._items)


def ensure_variety(
    candidate: T,
    history: CopyHistory,
    rewrite: Callable[[str], Optional[T]],
    text_of: Callable[[T], str] = str,
) -> T:
    """Return ``candidate``, or one rewrite of it if it repeats recent copy.

    ``rewrite`` receives the hint and returns a new candidate or ``None``.
    It is called at most once; its exceptions propagate to the caller.
    ``text_of`` renders a candidate to the text that is compared.
    """
    if not history.too_similar(text_of(candidate)):
        return candidate
    rewritten = rewrite(REWRITE_HINT)
    if rewritten is not None and not history.too_similar(text_of(rewritten)):
        return rewritten
    logger.debug("Rewrite still repetitive or empty; keeping original copy")
    return candidate
