"""
Pipeline Orchestration Module

This module provides the single entry point that runs every analysis stage
in order while keeping stage boundaries intact.

DESIGN PRINCIPLES:
==================
1. Stages communicate ONLY through contracts
2. Strictly sequential, single pass per case
3. Each stage consumes prior outputs and never mutates them
4. Input is validated before any stage runs
5. Cancellation is cooperative and checked between stages only
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
import threading
import time

from .contracts.base import Error, ErrorCode, Timestamp
from .contracts.events import AuditEventType, EvidenceEntry, Report
from .rules import RuleTable, DEFAULT_RULES
from .extraction import StatementExtractor, ExtractionConfig
from .temporal.clock import LogicalClock
from .temporal.timeline import TimelineBuilder, TimelineConfig
from .analysis import (
    ContradictionDetector, ContradictionConfig, BehavioralAnalyzer,
    BehaviorConfig, OmissionDetector, SubjectClassifier, ContradictionTopology
)
from .scoring import (
    ScoringConfig, SeverityScorer, LiabilityRanker, IntegrityScorer,
    ActionRecommender, dishonesty_score
)
from .report import NarrativeReportBuilder, ReportConfig, render_text
from .observability import ObservabilityEngine, ObservabilityConfig


# =============================================================================
# ERRORS AND CANCELLATION
# =============================================================================

class EvidenceValidationError(ValueError):
    """Raised when evidence violates the input contract."""

    def __init__(self, errors: Sequence[Error]):
        self.errors = tuple(errors)
        super().__init__("; ".join(e.message for e in self.errors))


class AnalysisCancelled(Exception):
    """Raised at a stage boundary after cancellation was requested."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Analysis cancelled before stage '{stage}'")


class CancellationToken:
    """Thread-safe cancellation flag shared with a running analysis."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def checkpoint(self, stage: str):
        if self._event.is_set():
            raise AnalysisCancelled(stage)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class PipelineConfig:
    """Unified configuration for every stage."""
    extraction: ExtractionConfig = None
    timeline: TimelineConfig = None
    contradictions: ContradictionConfig = None
    behavior: BehaviorConfig = None
    scoring: ScoringConfig = None
    report: ReportConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.extraction = self.extraction or ExtractionConfig()
        self.timeline = self.timeline or TimelineConfig()
        self.contradictions = self.contradictions or ContradictionConfig()
        self.behavior = self.behavior or BehaviorConfig()
        self.scoring = self.scoring or ScoringConfig()
        self.report = self.report or ReportConfig()
        self.observability = self.observability or ObservabilityConfig()


# =============================================================================
# PIPELINE
# =============================================================================

class ForensicPipeline:
    """
    Forensic evidence analysis pipeline.

    STAGE FLOW:
    ===========
    1. Extraction: EvidenceEntry -> Statement
    2. Temporal: Statement -> TimelineEvent, TimelineGap
    3. Analysis: contradictions, behavior, omissions, clusters, subjects
    4. Scoring: severity, liability, dishonesty, integrity, actions
    5. Report: Report value (clock read once, for generated_at)

    NO STAGE BYPASSES THIS FLOW.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        rules: RuleTable = DEFAULT_RULES,
        clock: Optional[LogicalClock] = None
    ):
        self._config = config or PipelineConfig()
        self._rules = rules
        self._clock = clock or LogicalClock.live()

        self._extractor = StatementExtractor(rules, self._config.extraction)
        self._timeline = TimelineBuilder(rules, self._config.timeline)
        self._contradictions = ContradictionDetector(rules, self._config.contradictions)
        self._behavior = BehavioralAnalyzer(rules, self._config.behavior)
        self._omissions = OmissionDetector(rules)
        self._subjects = SubjectClassifier(rules)
        self._severity = SeverityScorer(rules)
        self._liability = LiabilityRanker(self._config.scoring)
        self._integrity = IntegrityScorer(rules)
        self._actions = ActionRecommender(rules)
        self._report = NarrativeReportBuilder(rules, self._clock)
        self._observability = ObservabilityEngine(self._config.observability)

    @property
    def rules(self) -> RuleTable:
        return self._rules

    # =========================================================================
    # ANALYSIS INTERFACE
    # =========================================================================

    def analyze(
        self,
        evidence: Iterable[EvidenceEntry],
        case_id: str = "case",
        integrity_attested: Optional[bool] = None,
        cancellation: Optional[CancellationToken] = None
    ) -> Report:
        """
        Run the full pipeline over an ordered evidence sequence.

        Raises EvidenceValidationError before any stage runs when the input
        is structurally invalid, and AnalysisCancelled at a stage boundary
        when the token is cancelled.
        """
        entries = self.validate(evidence)
        token = cancellation or CancellationToken()

        with self._stage("extraction", token):
            statements = self._extractor.extract_all(entries)
            self._observability.collect_metric("statements_extracted_total", float(len(statements)))

        with self._stage("temporal", token):
            timeline = self._timeline.build(statements)

        with self._stage("analysis", token):
            timestamps = timeline.timestamps_by_statement()
            contradictions = self._contradictions.detect(statements, timestamps)
            anomalies = self._behavior.analyze(statements, timestamps)
            omissions = self._omissions.detect(statements, timeline.gaps)
            topology = ContradictionTopology()
            topology.build_graph(statements, contradictions)
            clusters = topology.clusters()
            self._observability.collect_metric(
                "contradiction_clusters",
                float(topology.compute_metrics().connected_components_count)
            )
            by_id = {s.statement_id: s for s in statements}
            contradiction_tags = self._subjects.tag_contradictions(contradictions, by_id)
            statement_tags = self._subjects.tag_statements(statements)
            for contradiction in contradictions:
                self._observability.collect_metric(
                    "contradiction_count", 1.0,
                    {"type": contradiction.contradiction_type.value}
                )
            for anomaly in anomalies:
                self._observability.collect_metric(
                    "anomaly_count", 1.0, {"type": anomaly.anomaly_type.value}
                )

        with self._stage("scoring", token):
            assessments = self._severity.assess(
                statements, contradictions, anomalies, omissions, statement_tags
            )
            category_scores = self._severity.category_scores(assessments)
            liabilities = self._liability.build(assessments, contradiction_tags)
            top_liabilities = self._liability.top(liabilities)
            actions = self._actions.recommend(top_liabilities)
            dishonesty = dishonesty_score(assessments)
            integrity = self._integrity.score(
                contradictions,
                self._integrity.count_evasion(statements),
                timeline.gaps,
            )
            self._observability.collect_metric("dishonesty_score", dishonesty)
            self._observability.collect_metric("integrity_score", integrity)

        with self._stage("report", token):
            report = self._report.build(
                case_id=case_id,
                evidence_count=len(entries),
                statements=statements,
                timeline=timeline,
                contradictions=contradictions,
                omissions=omissions,
                anomalies=anomalies,
                clusters=clusters,
                contradiction_subjects=contradiction_tags,
                statement_subjects=statement_tags,
                assessments=assessments,
                category_scores=category_scores,
                liabilities=liabilities,
                top_liabilities=top_liabilities,
                recommended_actions=actions,
                dishonesty_score=dishonesty,
                integrity_score=integrity,
                integrity_attested=integrity_attested,
            )

        self._observability.log_audit(
            "analysis_completed",
            event_type=AuditEventType.SYSTEM,
            entity_id=case_id,
            entity_type="case",
            statements=len(statements),
            contradictions=len(contradictions),
            anomalies=len(anomalies),
        )
        return report

    def render(self, report: Report) -> str:
        """Render a report with this pipeline's report configuration."""
        return render_text(report, self._config.report)

    def validate(self, evidence: Iterable[EvidenceEntry]) -> Tuple[EvidenceEntry, ...]:
        """Check the input contract; all violations are reported together."""
        if evidence is None:
            evidence = ()
        entries = list(evidence)
        errors: List[Error] = []
        seen: Dict[str, int] = {}

        for index, entry in enumerate(entries):
            if entry is None:
                errors.append(Error(
                    code=ErrorCode.MISSING_EVIDENCE_ENTRY,
                    message=f"Evidence entry {index} is missing",
                    timestamp=Timestamp.now().value,
                    context=(("index", str(index)),)
                ))
                continue
            if not isinstance(entry, EvidenceEntry):
                errors.append(Error(
                    code=ErrorCode.MALFORMED_PAYLOAD,
                    message=f"Evidence entry {index} is not an EvidenceEntry",
                    timestamp=Timestamp.now().value,
                    context=(("index", str(index)), ("type", type(entry).__name__))
                ))
                continue
            if entry.document_id in seen:
                errors.append(Error(
                    code=ErrorCode.DUPLICATE_DOCUMENT_ID,
                    message=f"Duplicate document id '{entry.document_id}'",
                    timestamp=Timestamp.now().value,
                    context=(
                        ("document_id", entry.document_id),
                        ("first_index", str(seen[entry.document_id])),
                        ("index", str(index)),
                    )
                ))
                continue
            seen[entry.document_id] = index

        for error in errors:
            self._observability.log_error(error)
        if errors:
            raise EvidenceValidationError(errors)

        self._observability.log_audit(
            "evidence_validated",
            event_type=AuditEventType.VALIDATION,
            entries=len(entries),
        )
        return tuple(entries)

    # =========================================================================
    # OBSERVABILITY INTERFACE
    # =========================================================================

    def get_audit_log(self, layers: Optional[List[str]] = None) -> List:
        return self._observability.get_unified_log(layers=layers)

    def get_audit_report(self) -> Dict:
        return self._observability.generate_audit_report()

    def get_metrics(self):
        return self._observability.get_metrics()

    @contextmanager
    def _stage(self, stage: str, token: CancellationToken) -> Iterator[None]:
        try:
            token.checkpoint(stage)
        except AnalysisCancelled:
            self._observability.log_audit(
                "analysis_cancelled",
                event_type=AuditEventType.CANCELLED,
                layer=stage,
                code=ErrorCode.ANALYSIS_CANCELLED.name,
            )
            raise

        self._observability.log_audit(
            f"{stage}_started", event_type=AuditEventType.STAGE_STARTED, layer=stage
        )
        start_time = time.time()
        yield
        elapsed_ms = (time.time() - start_time) * 1000
        self._observability.collect_metric("stage_duration_ms", elapsed_ms, {"stage": stage})
        self._observability.log_audit(
            f"{stage}_completed",
            event_type=AuditEventType.STAGE_COMPLETED,
            layer=stage,
            duration_ms=f"{elapsed_ms:.3f}",
        )
