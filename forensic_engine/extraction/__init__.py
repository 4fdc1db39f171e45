"""
Statement Extraction Layer

RESPONSIBILITY: Split evidentiary text into atomic, attributed statements
ALLOWED INPUTS: EvidenceEntry (or raw text + document id)
OUTPUTS: Statement (immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Compare statements with each other
- Read the clock or any external state
- Resolve dates beyond locating the raw token
- Raise on odd input (empty text yields no statements)

BOUNDARY ENFORCEMENT:
=====================
This layer ONLY consumes EvidenceEntry and produces Statement tuples.
Every keyword it uses comes from the injected RuleTable.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
import re

from ..contracts.base import content_id, clamp, LegalCategory, TimestampSource
from ..contracts.events import EvidenceEntry, Statement
from ..rules import RuleTable, DEFAULT_RULES
from ..rules.matching import (
    normalize_text, contains_phrase, count_phrase, first_phrase
)
from ..temporal.dates import DateNormalizer


@dataclass
class ExtractionConfig:
    """Configuration for statement extraction."""
    default_speaker: str = "unknown"
    max_speaker_words: int = 3


# =============================================================================
# SPEAKER ATTRIBUTION
# =============================================================================

class SpeakerExtractor:
    """
    Attribute lines to speakers from chat-style "Name: text" prefixes.

    Email and transcript header labels (From:, Subject:, ...) are not
    speakers; lines carrying them are reported as headers.
    """

    _PREFIX = re.compile(r"^\s*([A-Z][\w'.-]*(?:[ \t]+[A-Z][\w'.-]*)*)[ \t]*:[ \t]*(.*)$")

    HEADER_WORDS = frozenset({
        'from', 'to', 'cc', 'bcc', 'subject', 'date', 'time', 'sent', 're',
        'fw', 'fwd', 'http', 'https', 'attachment', 'attachments',
    })

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self._config = config or ExtractionConfig()

    def split(self, line: str) -> Tuple[Optional[str], str, bool]:
        """
        Split a line into (speaker, body, is_header).

        speaker is None when the line carries no recognised prefix.
        """
        match = self._PREFIX.match(line)
        if not match:
            return None, line, False
        name = match.group(1).strip()
        if name.lower() in self.HEADER_WORDS:
            return None, match.group(2), True
        if len(name.split()) > self._config.max_speaker_words:
            return None, line, False
        return name, match.group(2), False


# =============================================================================
# STATEMENT EXTRACTION
# =============================================================================

_SENTENCE_BOUNDARY = re.compile(r'(?<=[.!?])\s+')

_SYMBOL_AMOUNT = re.compile(
    r"(?:[$£€]\s?|\b(?:usd|eur|gbp|aed|zar)\s?)(\d{1,3}(?:,\d{3})+|\d+)(?:\.(\d+))?",
    re.IGNORECASE,
)
_RAND_AMOUNT = re.compile(r"\bR(\d{1,3}(?:,\d{3})+|\d+)(?:\.(\d+))?")


def extract_amounts(text: str) -> Tuple[float, ...]:
    """Currency amounts in order of appearance."""
    found: List[Tuple[int, float]] = []
    for pattern in (_SYMBOL_AMOUNT, _RAND_AMOUNT):
        for match in pattern.finditer(text):
            whole = match.group(1).replace(',', '')
            fraction = match.group(2)
            value = float(f"{whole}.{fraction}" if fraction else whole)
            found.append((match.start(), value))
    found.sort()
    return tuple(value for _, value in found)


class StatementExtractor:
    """
    Deterministic statement extractor.

    Lines are attributed to a speaker, split on sentence-terminal
    punctuation, and each sentence becomes one Statement with sentiment,
    certainty, legal category, raw date token and currency amounts.
    """

    def __init__(
        self,
        rules: RuleTable = DEFAULT_RULES,
        config: Optional[ExtractionConfig] = None
    ):
        self._rules = rules
        self._config = config or ExtractionConfig()
        self._speakers = SpeakerExtractor(self._config)
        self._dates = DateNormalizer(rules)

    # -------------------------------------------------------------------------
    # Public interface
    # -------------------------------------------------------------------------

    def extract_all(self, entries: Iterable[EvidenceEntry]) -> Tuple[Statement, ...]:
        """Extract every entry in order; ordinals run across the whole case."""
        statements: List[Statement] = []
        for entry in entries:
            statements.extend(self.extract(entry, start_ordinal=len(statements)))
        return tuple(statements)

    def extract(self, entry: EvidenceEntry, start_ordinal: int = 0) -> Tuple[Statement, ...]:
        statements: List[Statement] = []
        fallback_speaker = (entry.author or '').strip() or self._config.default_speaker

        for line in entry.raw_text.splitlines():
            speaker, body, is_header = self._speakers.split(line)
            if is_header:
                continue
            for sentence in self.split_sentences(body):
                position = len(statements)
                statements.append(self._build(
                    entry=entry,
                    text=sentence,
                    speaker=speaker or fallback_speaker,
                    ordinal=start_ordinal + position,
                    position=position,
                ))
        return tuple(statements)

    def extract_text(self, raw_text: str, document_id: str) -> Tuple[Statement, ...]:
        """Extract from bare text attributed to a document id."""
        return self.extract(EvidenceEntry(document_id=document_id, raw_text=raw_text))

    @staticmethod
    def split_sentences(text: str) -> List[str]:
        parts = (part.strip() for part in _SENTENCE_BOUNDARY.split(text))
        return [part for part in parts if part]

    # -------------------------------------------------------------------------
    # Per-sentence analysis
    # -------------------------------------------------------------------------

    def classify(self, text: str) -> LegalCategory:
        """Legal category; admission, denial, promise, financial in that order."""
        normalized = normalize_text(text)
        rules = self._rules
        if first_phrase(normalized, rules.admission_keywords):
            return LegalCategory.ADMISSION
        if first_phrase(normalized, rules.denial_keywords):
            return LegalCategory.DENIAL
        if first_phrase(normalized, rules.promise_keywords):
            return LegalCategory.PROMISE
        if self._mentions_money(normalized):
            return LegalCategory.FINANCIAL
        if text.rstrip().endswith('?'):
            return LegalCategory.OTHER
        return LegalCategory.ASSERTION

    def analyze_sentiment(self, text: str) -> float:
        normalized = normalize_text(text)
        positive = sum(count_phrase(normalized, w) for w in self._rules.positive_words)
        negative = sum(count_phrase(normalized, w) for w in self._rules.negative_words)
        total = positive + negative
        if total == 0:
            return 0.0
        return clamp((positive - negative) / total, -1.0, 1.0)

    def analyze_certainty(self, text: str) -> float:
        normalized = normalize_text(text)
        certain = sum(count_phrase(normalized, w) for w in self._rules.certain_words)
        hedged = sum(count_phrase(normalized, w) for w in self._rules.hedging_words)
        total = certain + hedged
        if total == 0:
            return 0.5
        return clamp(0.5 + 0.5 * (certain - hedged) / total, 0.0, 1.0)

    def _mentions_money(self, normalized: str) -> bool:
        if any(symbol in normalized for symbol in self._rules.currency_symbols):
            return True
        return first_phrase(normalized, self._rules.financial_keywords) is not None

    def _build(
        self,
        entry: EvidenceEntry,
        text: str,
        speaker: str,
        ordinal: int,
        position: int
    ) -> Statement:
        resolved = self._dates.resolve(text)
        if resolved is not None:
            timestamp, source = resolved.raw, TimestampSource.TEXT
        elif entry.explicit_timestamp:
            timestamp, source = entry.explicit_timestamp, TimestampSource.EXPLICIT
        else:
            timestamp, source = None, TimestampSource.NONE

        category = self.classify(text)
        amounts = extract_amounts(text)
        financial = (
            category == LegalCategory.FINANCIAL
            or bool(amounts)
            or self._mentions_money(normalize_text(text))
        )

        return Statement(
            statement_id=content_id("stmt", entry.document_id, position, text),
            speaker=speaker,
            text=text,
            document_id=entry.document_id,
            document_name=entry.document_name,
            ordinal=ordinal,
            position=position,
            sentiment=self.analyze_sentiment(text),
            certainty=self.analyze_certainty(text),
            legal_category=category,
            timestamp=timestamp,
            timestamp_source=source,
            amounts=amounts,
            financial=financial,
        )


__all__ = [
    "ExtractionConfig",
    "SpeakerExtractor",
    "StatementExtractor",
    "extract_amounts",
]
