"""
Scoring Layer

RESPONSIBILITY: Turn findings into scores
ALLOWED INPUTS: Statements, findings, subject tags, RuleTable
OUTPUTS: StatementAssessment, LiabilityEntry, RecommendedAction, scores

WHAT THIS LAYER MUST NOT DO:
============================
- Detect new findings
- Carry more than one formula per metric
- Return a score outside its documented bounds

CANONICAL FORMULAS:
===================
- Statement severity: HIGH if an anomaly cites it, MEDIUM if it carries a
  legal subject or flag keyword, LOW otherwise
- Dishonesty: flagged statements / all statements x 100 (0 when empty)
- Integrity: 100 - 15 x contradictions - 5 x evasions - 10 x timeline gaps
  - 20 x financial contradictions, clamped to [0, 100]
- Liability rank: total severity, then contradiction count, then
  recurrence, all descending; taxonomy order breaks remaining ties
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..analysis.subjects import subjects_by_target
from ..contracts.base import clamp, AnomalyType, LegalSubject, SeverityLevel
from ..contracts.events import (
    BehavioralAnomaly, Contradiction, LiabilityEntry, Omission,
    RecommendedAction, Statement, StatementAssessment, SubjectTagging,
    TimelineGap
)
from ..rules import RuleTable, DEFAULT_RULES
from ..rules.matching import normalize_text, count_phrase, matched_phrases


TAXONOMY_ORDER = {subject: index for index, subject in enumerate(LegalSubject)}


@dataclass
class ScoringConfig:
    """Configuration for scoring."""
    top_liabilities: int = 3


# =============================================================================
# STATEMENT SEVERITY
# =============================================================================

class SeverityScorer:
    """Per-statement severity and flagging."""

    def __init__(self, rules: RuleTable = DEFAULT_RULES):
        self._rules = rules

    def assess(
        self,
        statements: Tuple[Statement, ...],
        contradictions: Tuple[Contradiction, ...] = (),
        anomalies: Tuple[BehavioralAnomaly, ...] = (),
        omissions: Tuple[Omission, ...] = (),
        statement_tags: Tuple[SubjectTagging, ...] = ()
    ) -> Tuple[StatementAssessment, ...]:
        anomaly_types: Dict[str, List[AnomalyType]] = defaultdict(list)
        for anomaly in anomalies:
            for statement_id in anomaly.evidence_statement_ids:
                if anomaly.anomaly_type not in anomaly_types[statement_id]:
                    anomaly_types[statement_id].append(anomaly.anomaly_type)

        in_contradiction: Set[str] = set()
        for contradiction in contradictions:
            in_contradiction.add(contradiction.source_statement_id)
            in_contradiction.add(contradiction.target_statement_id)

        omitted = {o.statement_id for o in omissions if o.statement_id is not None}
        subjects = subjects_by_target(statement_tags)

        assessments = []
        for statement in statements:
            statement_id = statement.statement_id
            keywords = matched_phrases(normalize_text(statement.text), self._rules.flag_keywords)
            tagged = subjects.get(statement_id, ())
            behaviors = tuple(anomaly_types.get(statement_id, ()))

            if behaviors:
                severity = SeverityLevel.HIGH
            elif tagged or keywords:
                severity = SeverityLevel.MEDIUM
            else:
                severity = SeverityLevel.LOW

            assessments.append(StatementAssessment(
                statement_id=statement_id,
                severity=severity,
                subjects=tagged,
                keywords=keywords,
                anomaly_types=behaviors,
                flagged=bool(
                    behaviors or keywords
                    or statement_id in in_contradiction
                    or statement_id in omitted
                ),
            ))
        return tuple(assessments)

    @staticmethod
    def category_scores(
        assessments: Tuple[StatementAssessment, ...]
    ) -> Tuple[Tuple[LegalSubject, int], ...]:
        """Summed statement severity per subject, every subject listed."""
        totals = {subject: 0 for subject in LegalSubject}
        for assessment in assessments:
            for subject in assessment.subjects:
                totals[subject] += assessment.severity.value
        return tuple((subject, totals[subject]) for subject in LegalSubject)


def dishonesty_score(assessments: Tuple[StatementAssessment, ...]) -> float:
    """Percentage of statements flagged by any detector."""
    if not assessments:
        return 0.0
    flagged = sum(1 for a in assessments if a.flagged)
    return clamp(flagged / len(assessments) * 100.0, 0.0, 100.0)


# =============================================================================
# LIABILITY
# =============================================================================

class LiabilityRanker:
    """Aggregate and rank liability per legal subject."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self._config = config or ScoringConfig()

    @staticmethod
    def build(
        assessments: Tuple[StatementAssessment, ...],
        contradiction_tags: Tuple[SubjectTagging, ...] = ()
    ) -> Tuple[LiabilityEntry, ...]:
        totals = {subject: 0 for subject in LegalSubject}
        recurrence = {subject: 0 for subject in LegalSubject}
        for assessment in assessments:
            for subject in assessment.subjects:
                totals[subject] += assessment.severity.value
                recurrence[subject] += 1

        contradiction_counts = {subject: 0 for subject in LegalSubject}
        for tag in contradiction_tags:
            for subject in tag.subjects:
                contradiction_counts[subject] += 1

        return tuple(
            LiabilityEntry(
                subject=subject,
                total_severity=totals[subject],
                contradiction_count=contradiction_counts[subject],
                recurrence=recurrence[subject],
            )
            for subject in LegalSubject
        )

    @staticmethod
    def rank(entries: Iterable[LiabilityEntry]) -> Tuple[LiabilityEntry, ...]:
        return tuple(sorted(entries, key=lambda e: (
            -e.total_severity,
            -e.contradiction_count,
            -e.recurrence,
            TAXONOMY_ORDER[e.subject],
        )))

    def top(self, entries: Iterable[LiabilityEntry]) -> Tuple[LiabilityEntry, ...]:
        return self.rank(entries)[:self._config.top_liabilities]


# =============================================================================
# INTEGRITY
# =============================================================================

class IntegrityScorer:
    """Case integrity, penalized by contradictions, evasion and gaps."""

    def __init__(self, rules: RuleTable = DEFAULT_RULES):
        self._rules = rules

    def count_evasion(self, statements: Tuple[Statement, ...]) -> int:
        total = 0
        for statement in statements:
            normalized = normalize_text(statement.text)
            total += sum(count_phrase(normalized, p) for p in self._rules.evasion_phrases)
        return total

    def score(
        self,
        contradictions: Tuple[Contradiction, ...],
        evasion_count: int,
        gaps: Tuple[TimelineGap, ...]
    ) -> float:
        rules = self._rules
        financial = sum(1 for c in contradictions if c.financial)
        raw = (
            100.0
            - rules.contradiction_penalty * len(contradictions)
            - rules.evasion_penalty * evasion_count
            - rules.timeline_penalty * len(gaps)
            - rules.financial_penalty * financial
        )
        return clamp(raw, 0.0, 100.0)


# =============================================================================
# RECOMMENDED ACTIONS
# =============================================================================

class ActionRecommender:
    """Fixed subject -> action lookup for liabilities that carry severity."""

    def __init__(self, rules: RuleTable = DEFAULT_RULES):
        self._rules = rules

    def recommend(self, top_liabilities: Tuple[LiabilityEntry, ...]) -> Tuple[RecommendedAction, ...]:
        return tuple(
            self._rules.action_for(entry.subject)
            for entry in top_liabilities
            if entry.total_severity > 0
        )


__all__ = [
    "ScoringConfig",
    "SeverityScorer",
    "LiabilityRanker",
    "IntegrityScorer",
    "ActionRecommender",
    "dishonesty_score",
]
