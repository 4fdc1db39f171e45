"""
Omission Detector
=================

Flags signs that material was removed, cropped or withheld: explicit
markers in statement text ("[redacted]", "...", "missing") and timeline
gaps long enough to be suspicious on their own.
"""

from __future__ import annotations
from typing import List, Tuple

from ..contracts.base import content_id
from ..contracts.events import Omission, Statement, TimelineGap
from ..rules import RuleTable, DEFAULT_RULES
from ..rules.matching import normalize_text, contains_phrase


TIMELINE_GAP_INDICATOR = "timeline_gap"


class OmissionDetector:
    """One omission per (statement, indicator) match, plus one per gap."""

    def __init__(self, rules: RuleTable = DEFAULT_RULES):
        self._rules = rules

    def detect(
        self,
        statements: Tuple[Statement, ...],
        gaps: Tuple[TimelineGap, ...] = ()
    ) -> Tuple[Omission, ...]:
        omissions = self.scan_statements(statements)
        omissions.extend(self.from_gaps(gaps))
        return tuple(omissions)

    def scan_statements(self, statements: Tuple[Statement, ...]) -> List[Omission]:
        omissions: List[Omission] = []
        for statement in sorted(statements, key=lambda s: s.ordinal):
            normalized = normalize_text(statement.text)
            for indicator, description, severity in self._rules.omission_indicators:
                if contains_phrase(normalized, indicator):
                    omissions.append(Omission(
                        omission_id=content_id("omi", statement.statement_id, indicator),
                        indicator=indicator,
                        description=description,
                        severity=severity,
                        statement_id=statement.statement_id,
                    ))
        return omissions

    @staticmethod
    def from_gaps(gaps: Tuple[TimelineGap, ...]) -> List[Omission]:
        return [
            Omission(
                omission_id=content_id(
                    "omi", gap.start_event.event_id, gap.end_event.event_id,
                    TIMELINE_GAP_INDICATOR
                ),
                indicator=TIMELINE_GAP_INDICATOR,
                description=(
                    f"No recorded events for {gap.duration_days:.1f} days between "
                    f"{gap.start_event.normalized_timestamp.date().isoformat()} and "
                    f"{gap.end_event.normalized_timestamp.date().isoformat()}"
                ),
                severity=gap.suspicious_level,
            )
            for gap in gaps
        ]
