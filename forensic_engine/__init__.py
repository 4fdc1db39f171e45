"""
Forensic Narrative Engine

Deterministic evidence analysis: statements are extracted from evidentiary
text, placed on a timeline, compared for contradictions, profiled for
behavioral patterns, classified against a fixed legal-subject taxonomy,
scored, and assembled into a fixed-structure narrative report.

STAGE STRUCTURE:
================

1. EXTRACTION (extraction/)
   - Responsibility: Raw text -> attributed, categorized Statements
   - Outputs: Statement (immutable)
   - MUST NOT: Compare statements or read the clock

2. TEMPORAL (temporal/)
   - Responsibility: Date normalization, chronological ordering, gap detection
   - Outputs: TimelineEvent, TimelineGap
   - MUST NOT: Drop statements from any stage other than the timeline

3. ANALYSIS (analysis/)
   - Responsibility: Contradictions, behavioral anomalies, omissions,
     contradiction clusters, legal-subject tagging
   - Outputs: Contradiction, BehavioralAnomaly, Omission, SubjectTagging
   - MUST NOT: Adjudicate truth; findings are flags, never verdicts

4. SCORING (scoring/)
   - Responsibility: Severity, liability ranking, dishonesty and integrity
     scores, recommended actions
   - MUST NOT: Use more than one formula per metric

5. REPORT (report/)
   - Responsibility: Report assembly and pure text rendering

6. OBSERVABILITY (observability/)
   - Responsibility: Audit trail and stage metrics
   - MUST NOT: Feed anything back into analysis

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: every record is a frozen dataclass
- Deterministic: identical evidence yields an identical Report
- One rule table: every keyword and threshold lives in rules.RuleTable
- Explainable: every finding names its rule, terms and statement ids
"""

from .engine import ForensicPipeline, PipelineConfig, CancellationToken
from .contracts.events import EvidenceEntry, Report
from .report import render_text
from .rules import DEFAULT_RULES, RuleTable

__all__ = [
    "ForensicPipeline",
    "PipelineConfig",
    "CancellationToken",
    "EvidenceEntry",
    "Report",
    "render_text",
    "DEFAULT_RULES",
    "RuleTable",
]
