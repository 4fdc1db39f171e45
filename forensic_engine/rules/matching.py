"""
Deterministic phrase matching shared by every stage.

All matching runs on normalized text: lowercase, curly quotes folded to
ASCII. A phrase matches on word boundaries at each end that is
alphanumeric, so "will" never matches "willing" while "$" and "..." still
match as plain symbols.
"""

from __future__ import annotations
from functools import lru_cache
from typing import FrozenSet, Iterable, List, Optional, Pattern, Tuple
import re

from . import RuleTable


_QUOTE_FOLDS = str.maketrans({
    '‘': "'", '’': "'", '“': '"', '”': '"',
    '…': '...',
})

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")


def normalize_text(text: str) -> str:
    return text.translate(_QUOTE_FOLDS).lower()


@lru_cache(maxsize=4096)
def phrase_pattern(phrase: str) -> Pattern:
    """Compile a boundary-aware pattern for a lowercase phrase."""
    head = r'(?<![a-z0-9])' if phrase[:1].isalnum() else ''
    tail = r'(?![a-z0-9])' if phrase[-1:].isalnum() else ''
    return re.compile(head + re.escape(phrase) + tail)


def contains_phrase(normalized: str, phrase: str) -> bool:
    return phrase_pattern(phrase).search(normalized) is not None


def count_phrase(normalized: str, phrase: str) -> int:
    return len(phrase_pattern(phrase).findall(normalized))


def first_phrase(normalized: str, phrases: Iterable[str]) -> Optional[str]:
    """Return the first phrase (in table order) present in the text."""
    for phrase in phrases:
        if contains_phrase(normalized, phrase):
            return phrase
    return None


def matched_phrases(normalized: str, phrases: Iterable[str]) -> Tuple[str, ...]:
    return tuple(p for p in phrases if contains_phrase(normalized, p))


def mask_phrases(normalized: str, phrases: Iterable[str]) -> str:
    """Blank out every occurrence of the given phrases, longest first."""
    masked = normalized
    for phrase in sorted(phrases, key=len, reverse=True):
        masked = phrase_pattern(phrase).sub(' ', masked)
    return masked


def tokenize(normalized: str) -> List[str]:
    return _TOKEN_PATTERN.findall(normalized)


def is_negated(normalized: str, rules: RuleTable) -> bool:
    for token in tokenize(normalized):
        if token in rules.negation_words or token.endswith(rules.negation_suffix):
            return True
    return False


def topic_keywords(normalized: str, rules: RuleTable) -> FrozenSet[str]:
    """
    Content keywords of a text.

    Stop words, negation words and tokens shorter than the configured
    minimum are dropped.
    """
    return frozenset(
        token for token in tokenize(normalized)
        if len(token) >= rules.min_keyword_length
        and token not in rules.stop_words
        and token not in rules.negation_words
        and not token.endswith(rules.negation_suffix)
    )


def jaccard(left: FrozenSet[str], right: FrozenSet[str]) -> float:
    """Jaccard similarity; 0.0 when either side is empty."""
    if not left or not right:
        return 0.0
    return len(left & right) / len(left | right)
