"""
Shared Test Fixtures

Versioned, explicit fixtures for deterministic testing.
No random generation outside the hypothesis property tests.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple

from forensic_engine.contracts.base import LegalCategory, TimestampSource
from forensic_engine.contracts.events import EvidenceEntry, Statement
from forensic_engine.extraction import StatementExtractor
from forensic_engine.temporal.clock import LogicalClock


# =============================================================================
# FIXED TIMESTAMPS (deterministic)
# =============================================================================

REPORT_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def pinned_clock() -> LogicalClock:
    return LogicalClock.pinned(REPORT_TIME)


# =============================================================================
# BUILDERS
# =============================================================================

def make_entry(document_id: str, raw_text: str, **kwargs) -> EvidenceEntry:
    return EvidenceEntry(document_id=document_id, raw_text=raw_text, **kwargs)


def extract(*entries: EvidenceEntry) -> Tuple[Statement, ...]:
    """Run the real extractor so tests see production features."""
    return StatementExtractor().extract_all(entries)


def make_statement(
    text: str,
    statement_id: str,
    speaker: str = "Alice",
    document_id: str = "doc1",
    ordinal: int = 0,
    category: LegalCategory = LegalCategory.ASSERTION,
    sentiment: float = 0.0,
    certainty: float = 0.5,
    timestamp: Optional[str] = None,
    financial: bool = False,
) -> Statement:
    """Hand-built statement for tests that need exact feature values."""
    return Statement(
        statement_id=statement_id,
        speaker=speaker,
        text=text,
        document_id=document_id,
        document_name=document_id,
        ordinal=ordinal,
        position=ordinal,
        sentiment=sentiment,
        certainty=certainty,
        legal_category=category,
        timestamp=timestamp,
        timestamp_source=TimestampSource.TEXT if timestamp else TimestampSource.NONE,
        financial=financial,
    )


# =============================================================================
# SAMPLE CASE
# =============================================================================

SAMPLE_CASE = (
    EvidenceEntry(
        document_id="chat_001",
        document_name="WhatsApp export",
        raw_text=(
            "Marius: I never received the payment.\n"
            "Marius: I confirmed I received the payment last week.\n"
            "Kevin: The shareholder dividend was paid on 2023-01-01.\n"
            "Kevin: You're imagining things. That never happened.\n"
        ),
    ),
    EvidenceEntry(
        document_id="email_002",
        document_name="Email to board",
        raw_text=(
            "From: Kevin\n"
            "Subject: Accounts\n"
            "Kevin: The dividend was not paid on 2023-03-15.\n"
            "Kevin: Somebody hacked the password and the ledger is missing...\n"
        ),
    ),
)
