"""Normalized edit-distance similarity between a draft and a sent message."""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Trim, lowercase and collapse whitespace runs to one space."""
    return _WHITESPACE.sub(" ", (text or "").strip().lower())


def levenshtein(a: str, b: str) -> int:
    """Unit-cost edit distance (substitution, insertion, deletion)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> int:
    """Score two texts from 0 (unrelated) to 100 (identical after normalization)."""
    s1 = normalize_text(a)
    s2 = normalize_text(b)
    if s1 == s2:
        return 100
    if not s1 or not s2:
        return 0
    max_len = max(len(s1), len(s2))
    distance = levenshtein(s1, s2)
    # half-up rounding
    return int(100 * (max_len - distance) / max_len + 0.5)
