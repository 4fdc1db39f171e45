"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No behavior, no side effects, no dependencies.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses or closed enums
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple
from enum import Enum, auto
import hashlib


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Input boundary errors
    MISSING_EVIDENCE_ENTRY = auto()
    INVALID_DOCUMENT_ID = auto()
    DUPLICATE_DOCUMENT_ID = auto()
    MALFORMED_PAYLOAD = auto()

    # Pipeline errors
    ANALYSIS_CANCELLED = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        # Ensure UTC timezone
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class TimeRange:
    """Immutable time range for audit queries."""
    start: Timestamp
    end: Timestamp

    def __post_init__(self):
        if self.start.value > self.end.value:
            raise ValueError("TimeRange start must be before or equal to end")

    def contains(self, timestamp: Timestamp) -> bool:
        return self.start.value <= timestamp.value <= self.end.value


# =============================================================================
# IDENTITY (Content-derived, reproducible)
# =============================================================================

def content_id(prefix: str, *parts: object) -> str:
    """
    Generate a deterministic identifier from content.

    The same parts always produce the same id; random UUIDs are never used
    anywhere in the analysis path.
    """
    seed = "|".join(str(p) for p in parts)
    digest = hashlib.sha256(seed.encode('utf-8')).hexdigest()
    return f"{prefix}_{digest[:16]}"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    # Trim binary noise first so 0.95 * 10 rounds like 9.5
    trimmed = Decimal(repr(round(value, 9)))
    return int(trimmed.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def clamp(value, lower, upper):
    return max(lower, min(upper, value))


# =============================================================================
# CLOSED CLASSIFICATIONS (Exhaustive, no free-form tags)
# =============================================================================

class LegalCategory(Enum):
    """Legal category of a single statement."""
    ASSERTION = "assertion"
    DENIAL = "denial"
    ADMISSION = "admission"
    PROMISE = "promise"
    FINANCIAL = "financial"
    OTHER = "other"


class ContradictionType(Enum):
    """
    Contradiction kinds.

    DIRECT, CROSS_DOCUMENT and ENTITY follow the comparison pass that found
    the pair; SEMANTIC marks sentiment divergence on a shared subject.
    """
    DIRECT = "direct"
    CROSS_DOCUMENT = "cross_document"
    TEMPORAL = "temporal"
    SEMANTIC = "semantic"
    ENTITY = "entity"
    OMISSION = "omission"


class ContradictionRule(Enum):
    """
    The five pairwise rules, in precedence order, plus the timeline rule.

    TEMPORAL_SEQUENCE is checked independently of the other five, so a pair
    can carry one finding from each side.
    """
    LEXICAL_OPPOSITION = "lexical_opposition"
    NEGATION_MISMATCH = "negation_mismatch"
    TRIGGER_PHRASE = "trigger_phrase"
    SENTIMENT_DIVERGENCE = "sentiment_divergence"
    CLAIM_DENIAL = "claim_denial"
    TEMPORAL_SEQUENCE = "temporal_sequence"


class LegalTrigger(Enum):
    """Legal consequence attached to a contradiction."""
    UNRELIABLE_TESTIMONY = "unreliable_testimony"
    MISREPRESENTATION = "misrepresentation"
    FINANCIAL_DISCREPANCY = "financial_discrepancy"
    CONCEALMENT = "concealment"


class LegalSubject(Enum):
    """
    Fixed legal-subject taxonomy.

    Declaration order is the taxonomy order used for every tie-break.
    """
    SHAREHOLDER_OPPRESSION = "shareholder_oppression"
    BREACH_OF_FIDUCIARY_DUTY = "breach_of_fiduciary_duty"
    CYBERCRIME = "cybercrime"
    FRAUDULENT_EVIDENCE = "fraudulent_evidence"
    EMOTIONAL_EXPLOITATION = "emotional_exploitation"


class AnomalyType(Enum):
    """Behavioral anomaly kinds."""
    TONE_SHIFT = "tone_shift"
    CONFIDENCE_DECLINE = "confidence_decline"
    SUDDEN_DENIAL = "sudden_denial"
    GASLIGHTING = "gaslighting"
    DEFLECTION = "deflection"
    PRESSURE_TACTICS = "pressure_tactics"
    FINANCIAL_MANIPULATION = "financial_manipulation"
    EMOTIONAL_MANIPULATION = "emotional_manipulation"
    BLAME_SHIFTING = "blame_shifting"
    OVER_EXPLAINING = "over_explaining"
    PASSIVE_ADMISSION = "passive_admission"


class SeverityLevel(Enum):
    """Ordered severity levels; the value is the numeric score."""
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class EventType(Enum):
    """Kind of a timeline event, classified from its statement text."""
    PAYMENT = "payment"
    REQUEST = "request"
    PROMISE = "promise"
    AGREEMENT = "agreement"
    MEETING = "meeting"
    COMMUNICATION = "communication"
    LEGAL_ACTION = "legal_action"
    DEADLINE = "deadline"
    STATEMENT = "statement"


class TimestampSource(Enum):
    """Where a statement's date came from."""
    TEXT = "text"
    EXPLICIT = "explicit"
    NONE = "none"
