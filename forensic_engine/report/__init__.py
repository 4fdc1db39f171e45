"""
Narrative Report Layer

RESPONSIBILITY: Assemble the terminal Report and render it as text
ALLOWED INPUTS: Outputs of every earlier stage
OUTPUTS: Report (immutable), narrative text

WHAT THIS LAYER MUST NOT DO:
============================
- Detect or score anything
- Read the clock while rendering (generated_at is fixed at build time)
- Vary section order or headings between runs

SECTIONS (fixed order):
=======================
1. PRE-ANALYSIS DECLARATION      6. BEHAVIORAL FLAGS
2. CRITICAL LEGAL SUBJECTS TABLE 7. DISHONESTY SCORE
3. DISHONESTY DETECTION MATRIX   8. TOP 3 LIABILITIES
4. TAGGED EVIDENCE TABLE         9. RECOMMENDED ACTIONS
5. CONTRADICTIONS SUMMARY       10. POST-ANALYSIS DECLARATION
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..contracts.base import (
    AnomalyType, ContradictionType, LegalSubject, LegalTrigger
)
from ..contracts.events import (
    BehavioralAnomaly, Contradiction, ContradictionCluster, LiabilityEntry,
    Omission, RecommendedAction, Report, Statement, StatementAssessment,
    SubjectTagging
)
from ..rules import RuleTable, DEFAULT_RULES
from ..temporal.clock import LogicalClock
from ..temporal.timeline import Timeline


SECTION_TITLES = (
    "1. PRE-ANALYSIS DECLARATION",
    "2. CRITICAL LEGAL SUBJECTS TABLE",
    "3. DISHONESTY DETECTION MATRIX",
    "4. TAGGED EVIDENCE TABLE",
    "5. CONTRADICTIONS SUMMARY",
    "6. BEHAVIORAL FLAGS",
    "7. DISHONESTY SCORE",
    "8. TOP 3 LIABILITIES",
    "9. RECOMMENDED ACTIONS",
    "10. POST-ANALYSIS DECLARATION",
)

DETERMINISM_DECLARATION = (
    "This analysis is deterministic: identical evidence always yields "
    "identical output."
)


@dataclass
class ReportConfig:
    """Configuration for report rendering."""
    title: str = "FORENSIC NARRATIVE REPORT"
    width: int = 80
    quote_length: int = 100


# =============================================================================
# BUILDER
# =============================================================================

class NarrativeReportBuilder:
    """
    Assemble the Report value.

    The clock is read exactly once per build, for generated_at.
    """

    def __init__(
        self,
        rules: RuleTable = DEFAULT_RULES,
        clock: Optional[LogicalClock] = None
    ):
        self._rules = rules
        self._clock = clock or LogicalClock.live()

    def build(
        self,
        case_id: str,
        evidence_count: int,
        statements: Tuple[Statement, ...],
        timeline: Timeline,
        contradictions: Tuple[Contradiction, ...],
        omissions: Tuple[Omission, ...],
        anomalies: Tuple[BehavioralAnomaly, ...],
        clusters: Tuple[ContradictionCluster, ...],
        contradiction_subjects: Tuple[SubjectTagging, ...],
        statement_subjects: Tuple[SubjectTagging, ...],
        assessments: Tuple[StatementAssessment, ...],
        category_scores: Tuple[Tuple[LegalSubject, int], ...],
        liabilities: Tuple[LiabilityEntry, ...],
        top_liabilities: Tuple[LiabilityEntry, ...],
        recommended_actions: Tuple[RecommendedAction, ...],
        dishonesty_score: float,
        integrity_score: float,
        integrity_attested: Optional[bool] = None
    ) -> Report:
        counts = Counter(a.anomaly_type for a in anomalies)
        return Report(
            case_id=case_id,
            generated_at=self._clock.now(),
            rule_version=self._rules.version,
            evidence_count=evidence_count,
            statements=statements,
            timeline=timeline.events,
            gaps=timeline.gaps,
            contradictions=contradictions,
            omissions=omissions,
            anomalies=anomalies,
            clusters=clusters,
            contradiction_subjects=contradiction_subjects,
            statement_subjects=statement_subjects,
            assessments=assessments,
            category_scores=category_scores,
            liabilities=liabilities,
            top_liabilities=top_liabilities,
            recommended_actions=recommended_actions,
            behavioral_tally=tuple((t, counts.get(t, 0)) for t in AnomalyType),
            dishonesty_score=dishonesty_score,
            integrity_score=integrity_score,
            integrity_attested=integrity_attested,
        )


# =============================================================================
# RENDERING (pure)
# =============================================================================

def label(member: Enum) -> str:
    """Human-readable name for any enum member."""
    return str(member.name).replace('_', ' ').title()


def render_text(report: Report, config: Optional[ReportConfig] = None) -> str:
    """Render a Report to text. Output depends on the Report alone."""
    config = config or ReportConfig()
    statements = {s.statement_id: s for s in report.statements}
    rule = "=" * config.width
    lines: List[str] = [
        rule,
        config.title,
        rule,
        f"Case ID: {report.case_id}",
        f"Generated: {report.generated_at.isoformat()}",
        f"Rule Table Version: {report.rule_version}",
        f"Evidence Items: {report.evidence_count}",
        f"Statements Analyzed: {len(report.statements)}",
    ]

    sections = (
        _pre_analysis(report),
        _subjects_table(report),
        _detection_matrix(report),
        _tagged_evidence(report, statements, config),
        _contradictions_summary(report, statements, config),
        _behavioral_flags(report),
        _dishonesty(report),
        _top_liabilities(report),
        _recommended_actions(report),
        _post_analysis(report),
    )
    for title, body in zip(SECTION_TITLES, sections):
        lines.append("")
        lines.append(title)
        lines.append("-" * config.width)
        lines.extend(body)

    lines.extend(["", rule, "END OF REPORT", rule])
    return "\n".join(lines) + "\n"


def _pre_analysis(report: Report) -> List[str]:
    return [
        "This report was produced by rule-based analysis of the supplied",
        "evidence text. No statistical model or external service was used.",
        DETERMINISM_DECLARATION,
        "Findings are flags for review. They are not determinations of truth.",
        f"Evidence items received: {report.evidence_count}",
    ]


def _subjects_table(report: Report) -> List[str]:
    lines = [f"{'Subject':<34}{'Severity':>10}{'Contradictions':>16}{'Recurrence':>12}"]
    for entry in report.liabilities:
        lines.append(
            f"{label(entry.subject):<34}{entry.total_severity:>10}"
            f"{entry.contradiction_count:>16}{entry.recurrence:>12}"
        )
    return lines


def _detection_matrix(report: Report) -> List[str]:
    triggers = Counter(c.legal_trigger for c in report.contradictions)
    types = Counter(c.contradiction_type for c in report.contradictions)
    lines = [
        f"Contradictions: {len(report.contradictions)}",
        f"Behavioral anomalies: {len(report.anomalies)}",
        f"Omissions: {len(report.omissions)}",
        f"Timeline gaps: {len(report.gaps)}",
        f"Flagged statements: {report.flagged_count} of {len(report.statements)}",
        "By legal trigger:",
    ]
    lines.extend(f"  {label(t)}: {triggers.get(t, 0)}" for t in LegalTrigger)
    lines.append("By contradiction type:")
    lines.extend(f"  {label(t)}: {types.get(t, 0)}" for t in ContradictionType)
    return lines


def _tagged_evidence(
    report: Report,
    statements: Dict[str, Statement],
    config: ReportConfig
) -> List[str]:
    if not report.assessments:
        return ["No statements extracted."]
    lines = []
    for assessment in report.assessments:
        statement = statements[assessment.statement_id]
        subjects = ", ".join(label(s) for s in assessment.subjects) or "none"
        keywords = ", ".join(assessment.keywords) or "none"
        marker = "FLAGGED" if assessment.flagged else "clear"
        lines.append(
            f"[{statement.ordinal}] {statement.speaker} ({statement.document_name}) "
            f"{label(statement.legal_category)} | {assessment.severity.name} | {marker}"
        )
        lines.append(f"    \"{_quote(statement.text, config)}\"")
        lines.append(f"    Subjects: {subjects} | Keywords: {keywords}")
    return lines


def _contradictions_summary(
    report: Report,
    statements: Dict[str, Statement],
    config: ReportConfig
) -> List[str]:
    lines: List[str] = []
    if not report.contradictions:
        lines.append("No contradictions detected.")
    for c in report.contradictions:
        source = statements[c.source_statement_id]
        target = statements[c.target_statement_id]
        trigger = label(c.legal_trigger) if c.legal_trigger else "None"
        lines.append(
            f"- [{label(c.contradiction_type)}] severity {c.severity}/10 | "
            f"{trigger} | rule: {label(c.rule)}"
        )
        lines.append(f"    {c.description}")
        lines.append(f"    Source [{source.ordinal}] {source.speaker}: \"{_quote(source.text, config)}\"")
        lines.append(f"    Target [{target.ordinal}] {target.speaker}: \"{_quote(target.text, config)}\"")
        if c.amounts:
            lines.append("    Amounts: " + ", ".join(f"{a:,.2f}" for a in c.amounts))
    lines.append(f"Contradiction clusters: {len(report.clusters)}")

    lines.append("")
    lines.append("OMISSIONS DETECTED:")
    if not report.omissions:
        lines.append("  None")
    for omission in report.omissions:
        where = ""
        if omission.statement_id is not None:
            where = f" (statement [{statements[omission.statement_id].ordinal}])"
        lines.append(
            f"  - [{omission.severity.name}] {omission.indicator}: "
            f"{omission.description}{where}"
        )

    lines.append("")
    lines.append("TIMELINE GAPS:")
    if not report.gaps:
        lines.append("  None")
    for gap in report.gaps:
        lines.append(
            f"  - {gap.duration_days:.1f} days "
            f"({gap.start_event.normalized_timestamp.date().isoformat()} -> "
            f"{gap.end_event.normalized_timestamp.date().isoformat()}) "
            f"[{gap.suspicious_level.name}]"
        )
    return lines


def _behavioral_flags(report: Report) -> List[str]:
    lines = [f"  {label(t)}: {count}" for t, count in report.behavioral_tally]
    if not report.anomalies:
        lines.append("No behavioral anomalies detected.")
    for anomaly in report.anomalies:
        lines.append(
            f"- {anomaly.speaker}: {label(anomaly.anomaly_type)} "
            f"(severity {anomaly.severity}/10) - {anomaly.description}"
        )
        if anomaly.before_state or anomaly.after_state:
            lines.append(f"    {anomaly.before_state} -> {anomaly.after_state}")
    return lines


def _dishonesty(report: Report) -> List[str]:
    if report.integrity_attested is None:
        attestation = "not provided"
    elif report.integrity_attested:
        attestation = "attested"
    else:
        attestation = "NOT attested"
    return [
        f"Score: {report.dishonesty_score:.2f}%",
        f"Flagged statements: {report.flagged_count} of {len(report.statements)}",
        f"Integrity Score: {report.integrity_score:.2f} / 100",
        f"Evidence integrity attestation: {attestation}",
    ]


def _top_liabilities(report: Report) -> List[str]:
    if not report.top_liabilities:
        return ["No liabilities ranked."]
    return [
        f"{rank}. {label(entry.subject)} - total severity {entry.total_severity}, "
        f"contradictions {entry.contradiction_count}, recurrence {entry.recurrence}"
        for rank, entry in enumerate(report.top_liabilities, start=1)
    ]


def _recommended_actions(report: Report) -> List[str]:
    if not report.recommended_actions:
        return ["No recommended actions."]
    lines = []
    for action in report.recommended_actions:
        lines.append(f"- {label(action.subject)}: {action.action}")
        lines.append(f"    Authority: {action.authority}")
        lines.append(f"    Legal basis: {action.legal_basis}")
    return lines


def _post_analysis(report: Report) -> List[str]:
    return [
        "Analysis complete.",
        DETERMINISM_DECLARATION,
        f"Rule table version {report.rule_version} was applied to "
        f"{len(report.statements)} statements.",
        "Re-running this analysis on the same evidence will reproduce this report.",
    ]


def _quote(text: str, config: ReportConfig) -> str:
    if len(text) <= config.quote_length:
        return text
    return text[:config.quote_length - 3] + "..."


__all__ = [
    "NarrativeReportBuilder",
    "ReportConfig",
    "SECTION_TITLES",
    "render_text",
    "label",
]
