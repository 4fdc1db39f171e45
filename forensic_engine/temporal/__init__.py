"""
Temporal Layer

RESPONSIBILITY: Time as the pipeline sees it
- clock: the injectable LogicalClock (only source of "now")
- dates: DateNormalizer for statement date tokens
- timeline: TimelineBuilder, chronological order and gap detection

WHAT THIS LAYER MUST NOT DO:
============================
- Read system time outside LogicalClock
- Reorder or drop statements for any stage other than the timeline
"""

from .clock import LogicalClock, ClockExhausted, ClockMode
from .dates import DateNormalizer, NormalizedDate
from .timeline import Timeline, TimelineBuilder, TimelineConfig

__all__ = [
    "LogicalClock",
    "ClockExhausted",
    "ClockMode",
    "DateNormalizer",
    "NormalizedDate",
    "Timeline",
    "TimelineBuilder",
    "TimelineConfig",
]
