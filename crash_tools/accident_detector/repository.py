"""
Accident record storage boundary.

The detector itself never stores anything. Callers persist the returned
AccidentAnalysis through an AccidentRepository, so the in-memory store used
in tools and tests can be swapped for a real database without touching the
pipeline.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from crash_tools.accident_detector.config import DetectorConfig
from crash_tools.accident_detector.pipeline import analyze
from crash_tools.accident_detector.types import AccidentAnalysis, DetectionMethod, Severity

logger = logging.getLogger(__name__)

DEFAULT_ESCALATION_THRESHOLD = 70.0


@dataclass
class AccidentRecord:
    id: str
    analysis: AccidentAnalysis
    recorded_at: datetime
    metadata: dict = field(default_factory=dict)


class AccidentRepository(Protocol):
    """Storage interface for analyzed accidents."""

    def save(self, analysis: AccidentAnalysis, **metadata) -> str:
        ...

    def get(self, record_id: str) -> Optional[AccidentRecord]:
        ...

    def find(
        self,
        min_confidence: Optional[float] = None,
        severity: Optional[Severity] = None,
        detection_method: Optional[DetectionMethod] = None,
    ) -> list:
        ...


class InMemoryAccidentRepository:
    """Thread-safe dict-backed repository, newest records last."""

    def __init__(self):
        self._records: dict[str, AccidentRecord] = {}
        self._lock = threading.Lock()

    def save(self, analysis: AccidentAnalysis, **metadata) -> str:
        record = AccidentRecord(
            id=uuid.uuid4().hex,
            analysis=analysis,
            recorded_at=datetime.now(timezone.utc),
            metadata=dict(metadata),
        )
        with self._lock:
            self._records[record.id] = record
        return record.id

    def get(self, record_id: str) -> Optional[AccidentRecord]:
        with self._lock:
            return self._records.get(record_id)

    def find(
        self,
        min_confidence: Optional[float] = None,
        severity: Optional[Severity] = None,
        detection_method: Optional[DetectionMethod] = None,
    ) -> list:
        """Return records matching all given filters; `severity` is a minimum level."""
        with self._lock:
            records = list(self._records.values())
        out = []
        for rec in records:
            a = rec.analysis
            if min_confidence is not None and a.confidence_score < min_confidence:
                continue
            if severity is not None and a.severity < severity:
                continue
            if detection_method is not None and a.detection_method is not detection_method:
                continue
            out.append(rec)
        return out

    def __len__(self):
        with self._lock:
            return len(self._records)


@dataclass
class ReportOutcome:
    record_id: str
    analysis: AccidentAnalysis
    escalate: bool


def submit_report(
    samples,
    repository: AccidentRepository,
    cfg: DetectorConfig = None,
    escalation_threshold: float = DEFAULT_ESCALATION_THRESHOLD,
    **metadata,
) -> ReportOutcome:
    """Analyze a batch, persist the result, and flag it for escalation.

    Escalation (notifying contacts and hospitals) is the caller's job; this only
    reports whether confidence reached `escalation_threshold`. Fallback results
    are stored like any other, marked by their detection method.
    """
    analysis = analyze(samples, cfg)
    record_id = repository.save(analysis, **metadata)
    escalate = analysis.confidence_score >= escalation_threshold
    if escalate:
        logger.info("Accident %s escalated (confidence %.2f, %s)",
                    record_id, analysis.confidence_score, analysis.severity.value)
    return ReportOutcome(record_id=record_id, analysis=analysis, escalate=escalate)
