"""
Analysis Layer

RESPONSIBILITY: Detect findings in extracted statements
ALLOWED INPUTS: Statement tuples, Timeline output, RuleTable
OUTPUTS: Contradiction, BehavioralAnomaly, Omission, ContradictionCluster,
         SubjectTagging (all immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Decide which side of a contradiction is true
- Score or rank findings (see scoring/)
- Mutate statements or timeline records
- Use any constant outside the injected RuleTable
"""

from .contradictions import ContradictionDetector, ContradictionConfig
from .behavior import BehavioralAnalyzer, BehaviorConfig
from .omissions import OmissionDetector
from .subjects import SubjectClassifier
from .topology import ContradictionTopology, GraphMetrics

__all__ = [
    "ContradictionDetector",
    "ContradictionConfig",
    "BehavioralAnalyzer",
    "BehaviorConfig",
    "OmissionDetector",
    "SubjectClassifier",
    "ContradictionTopology",
    "GraphMetrics",
]
