"""
Item Description Normalizer
===========================

Turns raw item descriptions into canonical token sequences and derives the
cache key used to deduplicate classification calls.

The cache key is built from the longest non-stopword tokens of an item.
Longer words tend to be the distinctive ones ("entier", "golden") while short
ones are units or qualifiers ("bio", "lot"). Two descriptions sharing the
same top keywords deliberately share a cache slot.
"""

from __future__ import annotations

import re

STOP_WORDS = frozenset(
    {
        "le",
        "la",
        "les",
        "de",
        "du",
        "des",
        "et",
        "ou",
        "un",
        "une",
        "avec",
        "sans",
        "pour",
        "par",
        "dans",
        "sur",
        "sous",
        "entre",
    }
)

MIN_KEYWORD_LENGTH = 3
DEFAULT_KEY_KEYWORDS = 3
PROMPT_KEYWORDS = 5
KEY_SEPARATOR = "_"

# Underscore counts as punctuation here; it is the key separator.
_NON_ALNUM_RE = re.compile(r"[\W_]+")


def normalize(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    return " ".join(_NON_ALNUM_RE.sub(" ", text.lower()).split())


def extract_keywords(text: str) -> list[str]:
    """
    Return the distinctive tokens of ``text``, longest first.

    Tokens shorter than ``MIN_KEYWORD_LENGTH`` and stopwords are dropped.
    The sort is stable, so equally long tokens keep their original order.
    """
    tokens = normalize(text).split()
    keywords = [
        token
        for token in tokens
        if len(token) >= MIN_KEYWORD_LENGTH and token not in STOP_WORDS
    ]
    return sorted(keywords, key=len, reverse=True)


def cache_key(text: str, keyword_count: int = DEFAULT_KEY_KEYWORDS) -> str:
    """
    Derive the order-independent cache key for an item description.

    Duplicate keywords are folded and equally long keywords are ranked
    alphabetically, so any reordering of the same words yields the same key.
    Items with no keywords all map to the empty key.
    """
    unique = set(extract_keywords(text))
    ranked = sorted(unique, key=lambda word: (-len(word), word))
    return KEY_SEPARATOR.join(ranked[: max(1, keyword_count)])


def describe_item(text: str) -> str:
    """Build the item section of the prompt: raw text, keywords, normalized form."""
    keywords = extract_keywords(text)
    return (
        f'Item: "{text}"\n'
        f"Main keywords: {', '.join(keywords[:PROMPT_KEYWORDS])}\n"
        f"Normalized description: {normalize(text)}"
    )
