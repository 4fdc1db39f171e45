"""
Timeline Builder
================

Places dated statements on a single chronological timeline and reports
suspicious silences between adjacent events.

ORDERING:
=========
- Stable sort by (normalized timestamp, statement ordinal)
- Statements without a resolvable date are left off the timeline;
  every other stage still sees them

GAP LEVELS:
===========
- elapsed > gap_threshold_days   -> MEDIUM
- elapsed > high_gap_days        -> HIGH
- elapsed > critical_gap_days    -> CRITICAL
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..contracts.base import content_id, EventType, SeverityLevel, TimestampSource
from ..contracts.events import Statement, TimelineEvent, TimelineGap
from ..rules import RuleTable, DEFAULT_RULES
from ..rules.matching import normalize_text, first_phrase
from .dates import DateNormalizer


@dataclass
class TimelineConfig:
    """Configuration for timeline construction."""
    description_length: int = 120
    iso_confidence: float = 1.0
    text_confidence: float = 0.8
    explicit_confidence: float = 0.7


@dataclass(frozen=True)
class Timeline:
    """Ordered events plus the gaps between them."""
    events: Tuple[TimelineEvent, ...]
    gaps: Tuple[TimelineGap, ...]

    def timestamps_by_statement(self) -> Dict[str, datetime]:
        """Map statement id -> normalized timestamp for dated statements."""
        mapping = {}
        for event in self.events:
            for statement_id in event.related_statement_ids:
                mapping[statement_id] = event.normalized_timestamp
        return mapping


class TimelineBuilder:
    """Build a Timeline from statements."""

    def __init__(
        self,
        rules: RuleTable = DEFAULT_RULES,
        config: Optional[TimelineConfig] = None
    ):
        self._rules = rules
        self._config = config or TimelineConfig()
        self._dates = DateNormalizer(rules)

    def build(self, statements: Tuple[Statement, ...]) -> Timeline:
        events = self.build_events(statements)
        return Timeline(events=events, gaps=self.detect_gaps(events))

    def build_events(self, statements: Tuple[Statement, ...]) -> Tuple[TimelineEvent, ...]:
        events: List[TimelineEvent] = []
        for statement in statements:
            event = self._to_event(statement)
            if event is not None:
                events.append(event)
        events.sort(key=lambda e: (e.normalized_timestamp, e.ordinal))
        return tuple(events)

    def detect_gaps(self, events: Tuple[TimelineEvent, ...]) -> Tuple[TimelineGap, ...]:
        gaps: List[TimelineGap] = []
        for previous, current in zip(events, events[1:]):
            elapsed = current.normalized_timestamp - previous.normalized_timestamp
            days = elapsed.total_seconds() / 86400.0
            level = self.gap_level(days)
            if level is not None:
                gaps.append(TimelineGap(
                    start_event=previous,
                    end_event=current,
                    duration_days=days,
                    suspicious_level=level,
                ))
        return tuple(gaps)

    def gap_level(self, days: float) -> Optional[SeverityLevel]:
        rules = self._rules
        if days > rules.critical_gap_days:
            return SeverityLevel.CRITICAL
        if days > rules.high_gap_days:
            return SeverityLevel.HIGH
        if days > rules.gap_threshold_days:
            return SeverityLevel.MEDIUM
        return None

    def classify_event(self, text: str) -> EventType:
        normalized = normalize_text(text)
        for event_type, keywords in self._rules.event_type_keywords:
            if first_phrase(normalized, keywords):
                return event_type
        return EventType.STATEMENT

    def _to_event(self, statement: Statement) -> Optional[TimelineEvent]:
        if statement.timestamp is None:
            return None
        normalized = self._dates.normalize(statement.timestamp)
        if normalized is None:
            return None

        if statement.timestamp_source == TimestampSource.EXPLICIT:
            confidence = self._config.explicit_confidence
        elif normalized.is_iso:
            confidence = self._config.iso_confidence
        else:
            confidence = self._config.text_confidence

        text = statement.text
        if len(text) > self._config.description_length:
            text = text[:self._config.description_length - 3] + "..."

        return TimelineEvent(
            event_id=content_id("evt", statement.statement_id),
            normalized_timestamp=normalized.value,
            description=f"{statement.speaker}: {text}",
            event_type=self.classify_event(statement.text),
            related_statement_ids=(statement.statement_id,),
            confidence=confidence,
            ordinal=statement.ordinal,
            raw_date_text=statement.timestamp,
        )
