"""
Text similarity between free-text market descriptions.

Token-set overlap under-counts related phrasings ("Fed rate cut" vs
"Jerome Powell announcement"), so a fixed keyword table adds a bonus for
every topic both texts mention. Scores are heuristic and bounded to [0, 1].
"""

import re
from typing import Mapping, Sequence, Set

from .config import Config
from .utils import normalize_text, tokenize


def jaccard_similarity(words1: Set[str], words2: Set[str]) -> float:
    """Intersection over union of two word sets; 0 when both are empty."""
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def keyword_bonus(normalized1: str, normalized2: str,
                  keywords: Mapping[str, Sequence[str]] = Config.ARBITRAGE_KEYWORDS,
                  increment: float = Config.KEYWORD_BONUS) -> float:
    """Add ``increment`` for each keyword category present in both texts."""
    bonus = 0.0
    for category_keywords in keywords.values():
        in_first = any(keyword in normalized1 for keyword in category_keywords)
        in_second = any(keyword in normalized2 for keyword in category_keywords)
        if in_first and in_second:
            bonus += increment
    return bonus


def calculate_similarity(text1, text2,
                         keywords: Mapping[str, Sequence[str]] = Config.ARBITRAGE_KEYWORDS) -> float:
    """Similarity score in [0, 1] between two market descriptions."""
    normalized1 = normalize_text(text1)
    normalized2 = normalize_text(text2)

    if normalized1 == normalized2:
        return 1.0

    overlap = jaccard_similarity(tokenize(normalized1), tokenize(normalized2))
    bonus = keyword_bonus(normalized1, normalized2, keywords)

    return min(1.0, overlap + bonus)


_STRIP_SPECIAL = re.compile(r'[^a-z0-9_\s]')


def _strip_text(text) -> str:
    if not text or not isinstance(text, str):
        return ""
    text = _STRIP_SPECIAL.sub('', text.lower())
    return re.sub(r'\s+', ' ', text).strip()


def simple_word_overlap(text1, text2) -> float:
    """
    Plain word-overlap ratio used by the event comparison strategy.

    Special characters are deleted rather than spaced out, every word counts
    regardless of length, and the numerator counts words of the first text
    found in the second (duplicates included), capped at 1.0.
    """
    stripped1 = _strip_text(text1)
    stripped2 = _strip_text(text2)

    if stripped1 == stripped2:
        return 1.0 if stripped1 else 0.0

    words1 = stripped1.split(' ') if stripped1 else []
    words2 = stripped2.split(' ') if stripped2 else []
    total_words = len(set(words1) | set(words2))
    if total_words == 0:
        return 0.0

    second = set(words2)
    common_words = sum(1 for word in words1 if word in second)
    return min(1.0, common_words / total_words)
