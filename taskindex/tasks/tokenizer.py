"""Deterministic tokenizer shared by indexing and search."""

import re

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3


def tokenize(text: str | None, min_length: int = MIN_TOKEN_LENGTH) -> list[str]:
    """Split text into normalized search tokens.

    Lower-cases, replaces punctuation with spaces, splits on whitespace and
    drops tokens shorter than ``min_length``. Order is preserved and
    duplicates are kept.

    >>> tokenize("Buy milk, eggs & bread!")
    ['buy', 'milk', 'eggs', 'bread']
    """
    if not text:
        return []
    cleaned = _PUNCTUATION.sub(" ", text.lower())
    return [token for token in _WHITESPACE.split(cleaned) if len(token) >= min_length]
