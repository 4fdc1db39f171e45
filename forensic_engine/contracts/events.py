"""
Layer Contracts - Evidence, Findings and Report

Each stage of the pipeline consumes the records produced by earlier stages
and emits new ones. Records reference each other by id only, never by
object identity, and are never mutated after construction.

FLOW:
=====
EvidenceEntry -> Statement -> TimelineEvent / TimelineGap
Statement -> Contradiction / BehavioralAnomaly / Omission
Findings -> SubjectTagging -> StatementAssessment / LiabilityEntry
Everything -> Report
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from .base import (
    Timestamp, LegalCategory, ContradictionType, ContradictionRule,
    LegalTrigger, LegalSubject, AnomalyType, SeverityLevel, EventType,
    TimestampSource
)


# =============================================================================
# INPUT BOUNDARY
# =============================================================================

@dataclass(frozen=True)
class EvidenceEntry:
    """
    One piece of evidentiary text as supplied by the caller.

    Text extraction from binary media happens upstream; only text arrives
    here. The document id is the caller's stable handle for the entry.
    """
    document_id: str
    raw_text: str
    document_name: str = ""
    author: Optional[str] = None
    explicit_timestamp: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.document_id, str) or not self.document_id.strip():
            raise ValueError("EvidenceEntry document_id must be a non-empty string")
        if not isinstance(self.raw_text, str):
            raise ValueError("EvidenceEntry raw_text must be a string")
        if not self.document_name:
            object.__setattr__(self, 'document_name', self.document_id)


# =============================================================================
# EXTRACTION OUTPUT
# =============================================================================

@dataclass(frozen=True)
class Statement:
    """Atomic attributed utterance. Referenced by id from every later stage."""
    statement_id: str
    speaker: str
    text: str
    document_id: str
    document_name: str
    ordinal: int       # position across the whole case
    position: int      # position within its document
    sentiment: float
    certainty: float
    legal_category: LegalCategory
    timestamp: Optional[str] = None
    timestamp_source: TimestampSource = TimestampSource.NONE
    amounts: Tuple[float, ...] = field(default_factory=tuple)
    financial: bool = False

    def __post_init__(self):
        if not -1.0 <= self.sentiment <= 1.0:
            raise ValueError("sentiment must be between -1.0 and 1.0")
        if not 0.0 <= self.certainty <= 1.0:
            raise ValueError("certainty must be between 0.0 and 1.0")

    @property
    def speaker_key(self) -> str:
        """Speaker identity used for grouping (case-insensitive)."""
        return self.speaker.strip().lower()


# =============================================================================
# TIMELINE OUTPUT
# =============================================================================

@dataclass(frozen=True)
class TimelineEvent:
    """A dated statement placed on the case timeline."""
    event_id: str
    normalized_timestamp: datetime
    description: str
    event_type: EventType
    related_statement_ids: Tuple[str, ...]
    confidence: float
    ordinal: int
    raw_date_text: str = ""

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be between 0.0 and 1.0")


@dataclass(frozen=True)
class TimelineGap:
    """Silence between two adjacent timeline events."""
    start_event: TimelineEvent
    end_event: TimelineEvent
    duration_days: float
    suspicious_level: SeverityLevel


# =============================================================================
# DETECTOR OUTPUT
# =============================================================================

@dataclass(frozen=True)
class Contradiction:
    """
    Conflict between two statements.

    Source is always the statement with the lower ordinal. A case holds at
    most one contradiction per rule per unordered (source, target) pair.
    """
    contradiction_id: str
    contradiction_type: ContradictionType
    source_statement_id: str
    target_statement_id: str
    severity: int
    description: str
    rule: ContradictionRule
    confidence: float
    similarity_score: float
    pass_number: int
    affected_speakers: Tuple[str, ...]
    legal_trigger: Optional[LegalTrigger] = None
    amounts: Tuple[float, ...] = field(default_factory=tuple)
    financial: bool = False

    def __post_init__(self):
        if not 1 <= self.severity <= 10:
            raise ValueError("severity must be between 1 and 10")
        if not 0.0 <= self.similarity_score <= 1.0:
            raise ValueError("similarity_score must be between 0.0 and 1.0")
        if self.source_statement_id == self.target_statement_id:
            raise ValueError("a statement cannot contradict itself")

    @property
    def pair_key(self) -> Tuple[str, str]:
        return tuple(sorted((self.source_statement_id, self.target_statement_id)))

    @property
    def rule_key(self) -> Tuple[ContradictionRule, str, str]:
        """Uniqueness key: the rule plus the unordered pair."""
        return (self.rule,) + self.pair_key


@dataclass(frozen=True)
class BehavioralAnomaly:
    """Behavioral pattern or drift attributed to one speaker."""
    anomaly_id: str
    speaker: str
    anomaly_type: AnomalyType
    severity: int
    evidence_statement_ids: Tuple[str, ...]
    description: str
    before_state: str = ""
    after_state: str = ""
    confidence: float = 0.5
    instance_count: int = 1

    def __post_init__(self):
        if not 1 <= self.severity <= 10:
            raise ValueError("severity must be between 1 and 10")


@dataclass(frozen=True)
class Omission:
    """Indication that material was removed, cropped or left out."""
    omission_id: str
    indicator: str
    description: str
    severity: SeverityLevel
    statement_id: Optional[str] = None


@dataclass(frozen=True)
class ContradictionCluster:
    """Statements linked together by contradictions."""
    statement_ids: Tuple[str, ...]
    contradiction_ids: Tuple[str, ...]


# =============================================================================
# CLASSIFICATION AND SCORING OUTPUT
# =============================================================================

@dataclass(frozen=True)
class SubjectTagging:
    """Legal subjects attached to a contradiction or statement."""
    target_id: str
    subjects: Tuple[LegalSubject, ...]
    matched_keywords: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StatementAssessment:
    """Per-statement severity and the detectors that flagged it."""
    statement_id: str
    severity: SeverityLevel
    subjects: Tuple[LegalSubject, ...]
    keywords: Tuple[str, ...]
    anomaly_types: Tuple[AnomalyType, ...]
    flagged: bool


@dataclass(frozen=True)
class LiabilityEntry:
    """Aggregated liability for one legal subject."""
    subject: LegalSubject
    total_severity: int
    contradiction_count: int
    recurrence: int


@dataclass(frozen=True)
class RecommendedAction:
    """Fixed recommendation for a legal subject."""
    subject: LegalSubject
    authority: str
    action: str
    legal_basis: str


# =============================================================================
# TERMINAL OUTPUT
# =============================================================================

@dataclass(frozen=True)
class Report:
    """
    Aggregate of every finding for one case.

    Terminal value: rendered and serialized, never modified. The only time
    value in it is generated_at, taken from the injected clock.
    """
    case_id: str
    generated_at: datetime
    rule_version: str
    evidence_count: int
    statements: Tuple[Statement, ...]
    timeline: Tuple[TimelineEvent, ...]
    gaps: Tuple[TimelineGap, ...]
    contradictions: Tuple[Contradiction, ...]
    omissions: Tuple[Omission, ...]
    anomalies: Tuple[BehavioralAnomaly, ...]
    clusters: Tuple[ContradictionCluster, ...]
    contradiction_subjects: Tuple[SubjectTagging, ...]
    statement_subjects: Tuple[SubjectTagging, ...]
    assessments: Tuple[StatementAssessment, ...]
    category_scores: Tuple[Tuple[LegalSubject, int], ...]
    liabilities: Tuple[LiabilityEntry, ...]
    top_liabilities: Tuple[LiabilityEntry, ...]
    recommended_actions: Tuple[RecommendedAction, ...]
    behavioral_tally: Tuple[Tuple[AnomalyType, int], ...]
    dishonesty_score: float
    integrity_score: float
    integrity_attested: Optional[bool] = None

    def __post_init__(self):
        if not 0.0 <= self.dishonesty_score <= 100.0:
            raise ValueError("dishonesty_score must be between 0 and 100")
        if not 0.0 <= self.integrity_score <= 100.0:
            raise ValueError("integrity_score must be between 0 and 100")

    @property
    def flagged_count(self) -> int:
        return sum(1 for a in self.assessments if a.flagged)


# =============================================================================
# OBSERVABILITY CONTRACTS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    VALIDATION = "validation"
    STAGE_STARTED = "stage_started"
    STAGE_COMPLETED = "stage_completed"
    CANCELLED = "cancelled"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which stage generated this
    action: str
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
