"""
Observability & Audit Layer

RESPONSIBILITY: Audit trail and metrics for every pipeline stage
ALLOWED INPUTS: Audit entries and metric points from the pipeline
OUTPUTS: Ordered audit journal, metric series, audit summary

WHAT THIS LAYER MUST NOT DO:
============================
- Modify analysis behavior
- Filter or interpret findings (only record counts and timings)
- Feed recorded data back into any stage
- Appear in, or alter, the Report

BOUNDARY ENFORCEMENT:
=====================
- The journal is append-only and ordered by emission sequence
- Audit timestamps are wall-clock and never reach the Report
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..contracts.base import content_id, Timestamp, TimeRange, Error
from ..contracts.events import AuditLogEntry, AuditEventType, MetricPoint


STAGES = ('engine', 'extraction', 'temporal', 'analysis', 'scoring', 'report')


# =============================================================================
# AUDIT JOURNAL
# =============================================================================

class AuditJournal:
    """
    Append-only audit journal shared by all stages.

    Entries keep their emission order; per-stage views are filters over it,
    so a unified log never has to be re-sorted on wall-clock ties.
    """

    def __init__(self, stages: Tuple[str, ...] = STAGES):
        self._stages = stages
        self._entries: List[AuditLogEntry] = []

    def append(self, entry: AuditLogEntry) -> bool:
        if entry.layer not in self._stages:
            return False
        self._entries.append(entry)
        return True

    def select(
        self,
        layers: Optional[List[str]] = None,
        event_type: Optional[AuditEventType] = None,
        time_range: Optional[TimeRange] = None,
    ) -> List[AuditLogEntry]:
        selected = []
        for entry in self._entries:
            if layers and entry.layer not in layers:
                continue
            if event_type and entry.event_type != event_type:
                continue
            if time_range and not time_range.contains(entry.timestamp):
                continue
            selected.append(entry)
        return selected

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# METRICS
# =============================================================================

class MetricType(Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


PIPELINE_METRICS = (
    MetricDefinition("stage_duration_ms", MetricType.TIMING,
                     "Wall time spent in a stage", ("stage",)),
    MetricDefinition("statements_extracted_total", MetricType.COUNTER,
                     "Statements extracted from evidence"),
    MetricDefinition("contradiction_count", MetricType.COUNTER,
                     "Contradictions detected per type", ("type",)),
    MetricDefinition("anomaly_count", MetricType.COUNTER,
                     "Behavioral anomalies detected per type", ("type",)),
    MetricDefinition("contradiction_clusters", MetricType.GAUGE,
                     "Connected components of the contradiction graph"),
    MetricDefinition("dishonesty_score", MetricType.GAUGE,
                     "Dishonesty score of the last analyzed case"),
    MetricDefinition("integrity_score", MetricType.GAUGE,
                     "Integrity score of the last analyzed case"),
)


class MetricsCollector:
    """
    Append-only metric series keyed by metric name.

    Only registered metrics are accepted. Label keys must match the
    definition so series stay comparable between runs.
    """

    def __init__(self, definitions: Tuple[MetricDefinition, ...] = PIPELINE_METRICS):
        self._definitions: Dict[str, MetricDefinition] = {}
        self._series: Dict[str, List[MetricPoint]] = {}
        for definition in definitions:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        self._definitions[definition.name] = definition
        self._series.setdefault(definition.name, [])

    def definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ) -> MetricPoint:
        definition = self._definitions.get(metric_name)
        if definition is None:
            raise KeyError(f"Unregistered metric: {metric_name}")

        labels = labels or {}
        unexpected = set(labels) - set(definition.labels)
        if unexpected:
            raise ValueError(
                f"Metric {metric_name} does not take labels {sorted(unexpected)}"
            )

        point = MetricPoint(
            metric_name=metric_name,
            value=float(value),
            timestamp=Timestamp.now(),
            labels=tuple(sorted(labels.items())),
        )
        self._series[metric_name].append(point)
        return point

    def get_metric(self, metric_name: str, **labels: str) -> List[MetricPoint]:
        points = self._series.get(metric_name, [])
        if labels:
            wanted = set(labels.items())
            points = [p for p in points if wanted <= set(p.labels)]
        return list(points)

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        points = self._series.get(metric_name)
        return points[-1] if points else None

    def compute_aggregates(self, metric_name: str, **labels: str) -> Dict[str, float]:
        """count/sum/min/max/avg and p95 over a series; empty dict when unseen."""
        points = self.get_metric(metric_name, **labels)
        if not points:
            return {}

        values = np.array([p.value for p in points], dtype=float)
        return {
            'count': int(values.size),
            'sum': float(values.sum()),
            'min': float(values.min()),
            'max': float(values.max()),
            'avg': float(values.mean()),
            'p95': float(np.percentile(values, 95)),
        }


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

@dataclass
class ObservabilityConfig:
    enable_metrics: bool = True


class ObservabilityEngine:
    """
    Per-pipeline audit and metrics sink.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Read access returns copies
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._journal = AuditJournal()
        self._journal_lock = Lock()
        self._metrics = MetricsCollector() if self._config.enable_metrics else None

    def log_audit(
        self,
        action: str,
        event_type: AuditEventType = AuditEventType.SYSTEM,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        layer: str = "engine",
        **details: object
    ) -> AuditLogEntry:
        """Build an audit entry and append it to the journal."""
        metadata = tuple((key, str(value)) for key, value in sorted(details.items()))
        # Sequence number and append must not interleave
        with self._journal_lock:
            entry = AuditLogEntry(
                entry_id=content_id("audit", layer, action, len(self._journal)),
                event_type=event_type,
                timestamp=Timestamp.now(),
                layer=layer,
                action=action,
                entity_id=entity_id,
                entity_type=entity_type,
                metadata=metadata
            )
            self._journal.append(entry)
        return entry

    def log_error(self, error: Error, layer: str = "engine") -> AuditLogEntry:
        return self.log_audit(
            action=error.code.name.lower(),
            event_type=AuditEventType.ERROR,
            layer=layer,
            message=error.message,
            **dict(error.context)
        )

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        if self._metrics is not None:
            self._metrics.record(metric_name, value, labels)

    def get_unified_log(
        self,
        time_range: Optional[TimeRange] = None,
        layers: Optional[List[str]] = None
    ) -> List[AuditLogEntry]:
        return self._journal.select(layers=layers, time_range=time_range)

    def get_layer_log(self, layer_name: str) -> List[AuditLogEntry]:
        return self._journal.select(layers=[layer_name])

    def get_metrics(self) -> Optional[MetricsCollector]:
        return self._metrics

    def generate_audit_report(self, time_range: Optional[TimeRange] = None) -> Dict:
        """Counts by stage and event type, error codes, and stage timings."""
        entries = self.get_unified_log(time_range=time_range)

        by_layer: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        errors: List[str] = []
        for entry in entries:
            by_layer[entry.layer] = by_layer.get(entry.layer, 0) + 1
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1
            if entry.event_type == AuditEventType.ERROR:
                errors.append(entry.action)

        stage_timings: Dict[str, Dict[str, float]] = {}
        if self._metrics is not None:
            for stage in STAGES:
                aggregates = self._metrics.compute_aggregates("stage_duration_ms", stage=stage)
                if aggregates:
                    stage_timings[stage] = aggregates

        return {
            'total_entries': len(entries),
            'by_layer': by_layer,
            'by_event_type': by_type,
            'errors': errors,
            'stage_timings': stage_timings,
            'time_range': {
                'start': entries[0].timestamp.to_iso() if entries else None,
                'end': entries[-1].timestamp.to_iso() if entries else None,
            },
        }
