"""
Behavioral Analyzer
===================

Per-speaker behavioral profiling.

DRIFT (adjacent statements, chronological):
- Sentiment drop beyond the tone-shift threshold     -> TONE_SHIFT
- Certainty drop beyond the decline threshold        -> CONFIDENCE_DECLINE
- Admission immediately followed by a denial         -> SUDDEN_DENIAL

PATTERNS (phrase tables over all of a speaker's statements):
- Instance count >= 5 -> 10, >= 3 -> 8, >= 2 -> 5, else 2
- Confidence grows with the share of the table's phrases that were used
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from ..contracts.base import content_id, clamp, round_half_up, AnomalyType, LegalCategory
from ..contracts.events import BehavioralAnomaly, Statement
from ..rules import RuleTable, DEFAULT_RULES
from ..rules.matching import normalize_text, count_phrase


@dataclass
class BehaviorConfig:
    """Configuration for behavioral analysis."""
    tone_shift_scale: float = 5.0
    certainty_decline_scale: float = 10.0


class BehavioralAnalyzer:
    """Detect drift and manipulation patterns per speaker."""

    def __init__(
        self,
        rules: RuleTable = DEFAULT_RULES,
        config: Optional[BehaviorConfig] = None
    ):
        self._rules = rules
        self._config = config or BehaviorConfig()

    def analyze(
        self,
        statements: Tuple[Statement, ...],
        timestamps: Optional[Mapping[str, datetime]] = None
    ) -> Tuple[BehavioralAnomaly, ...]:
        """
        Analyze every speaker, speakers in sorted order.

        timestamps maps statement id to its normalized instant (as produced
        by the timeline); statements keep document order when any of a
        speaker's statements is undated.
        """
        by_speaker: Dict[str, List[Statement]] = defaultdict(list)
        for statement in statements:
            by_speaker[statement.speaker_key].append(statement)

        anomalies: List[BehavioralAnomaly] = []
        for speaker_key in sorted(by_speaker):
            ordered = self.order(by_speaker[speaker_key], timestamps or {})
            anomalies.extend(self.detect_drift(ordered))
            anomalies.extend(self.detect_patterns(ordered))
        return tuple(anomalies)

    @staticmethod
    def order(
        statements: List[Statement],
        timestamps: Mapping[str, datetime]
    ) -> List[Statement]:
        if statements and all(s.statement_id in timestamps for s in statements):
            return sorted(statements, key=lambda s: (timestamps[s.statement_id], s.ordinal))
        return sorted(statements, key=lambda s: s.ordinal)

    # =========================================================================
    # DRIFT
    # =========================================================================

    def detect_drift(self, ordered: List[Statement]) -> List[BehavioralAnomaly]:
        if len(ordered) < 2:
            return []

        rules = self._rules
        sentiment_deltas = np.diff(np.array([s.sentiment for s in ordered], dtype=float))
        certainty_deltas = np.diff(np.array([s.certainty for s in ordered], dtype=float))

        anomalies: List[BehavioralAnomaly] = []
        for i in range(len(ordered) - 1):
            previous, current = ordered[i], ordered[i + 1]
            sentiment_delta = float(sentiment_deltas[i])
            certainty_delta = float(certainty_deltas[i])

            if sentiment_delta < -rules.tone_shift_threshold:
                anomalies.append(self._anomaly(
                    previous.speaker,
                    AnomalyType.TONE_SHIFT,
                    clamp(round_half_up(abs(sentiment_delta) * self._config.tone_shift_scale), 1, 10),
                    (previous.statement_id, current.statement_id),
                    f"Sentiment dropped by {abs(sentiment_delta):.2f}",
                    before_state=f"sentiment={previous.sentiment:+.2f}",
                    after_state=f"sentiment={current.sentiment:+.2f}",
                ))

            if certainty_delta < -rules.certainty_decline_threshold:
                anomalies.append(self._anomaly(
                    previous.speaker,
                    AnomalyType.CONFIDENCE_DECLINE,
                    clamp(round_half_up(abs(certainty_delta) * self._config.certainty_decline_scale), 1, 10),
                    (previous.statement_id, current.statement_id),
                    f"Certainty dropped by {abs(certainty_delta):.2f}",
                    before_state=f"certainty={previous.certainty:.2f}",
                    after_state=f"certainty={current.certainty:.2f}",
                ))

            if (previous.legal_category == LegalCategory.ADMISSION
                    and current.legal_category == LegalCategory.DENIAL):
                anomalies.append(self._anomaly(
                    previous.speaker,
                    AnomalyType.SUDDEN_DENIAL,
                    rules.sudden_denial_severity,
                    (previous.statement_id, current.statement_id),
                    "Admission followed directly by denial",
                    before_state=LegalCategory.ADMISSION.value,
                    after_state=LegalCategory.DENIAL.value,
                ))

        return anomalies

    # =========================================================================
    # PATTERNS
    # =========================================================================

    def detect_patterns(self, ordered: List[Statement]) -> List[BehavioralAnomaly]:
        if not ordered:
            return []

        anomalies: List[BehavioralAnomaly] = []
        for anomaly_type, phrases in self._rules.behavior_phrases:
            instances = 0
            found = set()
            evidence: List[str] = []
            for statement in ordered:
                normalized = normalize_text(statement.text)
                hits = 0
                for phrase in phrases:
                    count = count_phrase(normalized, phrase)
                    if count:
                        hits += count
                        found.add(phrase)
                if hits:
                    instances += hits
                    evidence.append(statement.statement_id)

            if instances == 0:
                continue

            anomalies.append(self._anomaly(
                ordered[0].speaker,
                anomaly_type,
                self.pattern_severity(instances),
                tuple(evidence),
                f"{_label(anomaly_type)} pattern: {instances} instance(s) "
                f"({', '.join(sorted(found))})",
                confidence=self.pattern_confidence(len(found), len(phrases)),
                instance_count=instances,
            ))
        return anomalies

    def pattern_severity(self, instances: int) -> int:
        for minimum, severity in self._rules.pattern_severity_steps:
            if instances >= minimum:
                return severity
        return self._rules.pattern_base_severity

    @staticmethod
    def pattern_confidence(distinct_found: int, vocabulary_size: int) -> float:
        if vocabulary_size == 0:
            return 0.5
        return clamp(0.5 + 0.5 * distinct_found / vocabulary_size, 0.5, 1.0)

    @staticmethod
    def _anomaly(
        speaker: str,
        anomaly_type: AnomalyType,
        severity: int,
        evidence: Tuple[str, ...],
        description: str,
        before_state: str = "",
        after_state: str = "",
        confidence: float = 0.5,
        instance_count: int = 1
    ) -> BehavioralAnomaly:
        return BehavioralAnomaly(
            anomaly_id=content_id("anm", speaker.lower(), anomaly_type.value, *evidence),
            speaker=speaker,
            anomaly_type=anomaly_type,
            severity=severity,
            evidence_statement_ids=evidence,
            description=description,
            before_state=before_state,
            after_state=after_state,
            confidence=confidence,
            instance_count=instance_count,
        )


def _label(anomaly_type: AnomalyType) -> str:
    return anomaly_type.value.replace('_', ' ').title()
