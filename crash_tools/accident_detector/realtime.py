"""Real-time pre-alerts from a short rolling buffer of samples.

Each device/session owns one StreamBuffer holding its last `buffer_size`
samples. Every push runs three cheap threshold checks on the newest sample
and decides whether the full pipeline should be run.

States are implicit in the buffer length: empty, warming up (fewer than
`medium_trigger_min_samples`), and full (`buffer_size`).
"""

import logging
import threading
from collections import deque

from crash_tools.accident_detector.config import DetectorConfig, RealtimeConfig
from crash_tools.accident_detector.pipeline import analyze
from crash_tools.accident_detector.types import (
    AccidentAnalysis,
    AlertLevel,
    QuickChecks,
    RealtimeVerdict,
    SensorSample,
)
from crash_tools.accident_detector.validation import coerce_sample

logger = logging.getLogger(__name__)


class StreamBuffer:
    """Bounded FIFO of the most recent samples for a single session."""

    def __init__(self, capacity: int = 10):
        self.capacity = capacity
        self._samples = deque(maxlen=capacity)

    def append(self, sample: SensorSample):
        # deque(maxlen) drops the oldest sample once full
        self._samples.append(sample)

    def snapshot(self) -> tuple:
        return tuple(self._samples)

    def __len__(self):
        return len(self._samples)

    def __getitem__(self, idx):
        return self._samples[idx]

    def __iter__(self):
        return iter(self._samples)

    def clear(self):
        self._samples.clear()


def quick_checks(sample: SensorSample, buffer: StreamBuffer, cfg: RealtimeConfig) -> QuickChecks:
    """Threshold checks on the newest sample. `buffer` already contains it."""
    sudden_stop = False
    if len(buffer) >= 2:
        sudden_stop = abs(buffer[-1].speed_kmh - buffer[-2].speed_kmh) > cfg.sudden_stop_kmh
    return QuickChecks(
        high_impact=sample.accel_magnitude > cfg.high_impact_g,
        sudden_stop=sudden_stop,
        phone_dropped=sample.accel_magnitude > cfg.phone_drop_g,
    )


def process_sample(sample, buffer: StreamBuffer, cfg: RealtimeConfig = None) -> RealtimeVerdict:
    """Push one sample into `buffer` and return the pre-alert verdict.

    Raises MalformedSampleError if `sample` does not have the sensor shape;
    live telemetry is expected to be validated by the transport layer.
    """
    if cfg is None:
        cfg = RealtimeConfig()

    sample = coerce_sample(sample)
    buffer.append(sample)
    checks = quick_checks(sample, buffer, cfg)

    if checks.high_impact or checks.sudden_stop:
        level = AlertLevel.HIGH
    elif checks.phone_dropped:
        level = AlertLevel.MEDIUM
    else:
        level = AlertLevel.LOW

    trigger = level is AlertLevel.HIGH or (
        level is AlertLevel.MEDIUM and len(buffer) >= cfg.medium_trigger_min_samples
    )
    return RealtimeVerdict(
        alert_level=level,
        quick_checks=checks,
        should_trigger_full_analysis=trigger,
        buffer_size=len(buffer),
        samples=buffer.snapshot(),
    )


class _Session:
    __slots__ = ("buffer", "lock")

    def __init__(self, capacity: int):
        self.buffer = StreamBuffer(capacity)
        self.lock = threading.Lock()


class RealtimeStreamAnalyzer:
    """Session-keyed front end for process_sample().

    Buffers are never shared between sessions. Pushes for the same session are
    serialized on that session's lock; different sessions do not contend
    beyond the short registry lookup. The transport layer decides when a
    session ends and must call end_session().
    """

    def __init__(self, cfg: DetectorConfig = None, realtime_cfg: RealtimeConfig = None):
        self.cfg = cfg if cfg is not None else DetectorConfig()
        self.realtime_cfg = realtime_cfg if realtime_cfg is not None else RealtimeConfig()
        self._sessions = {}
        self._registry_lock = threading.Lock()

    def _session(self, session_id) -> _Session:
        with self._registry_lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = _Session(self.realtime_cfg.buffer_size)
                self._sessions[session_id] = session
                logger.debug("Opened stream buffer for session %s", session_id)
            return session

    def push(self, session_id, sample) -> RealtimeVerdict:
        session = self._session(session_id)
        with session.lock:
            verdict = process_sample(sample, session.buffer, self.realtime_cfg)
        if verdict.alert_level is AlertLevel.HIGH:
            logger.debug("High alert for session %s: %s", session_id, verdict.quick_checks)
        return verdict

    def session_samples(self, session_id) -> tuple:
        with self._registry_lock:
            session = self._sessions.get(session_id)
        if session is None:
            return ()
        with session.lock:
            return session.buffer.snapshot()

    def analyze_session(self, session_id) -> AccidentAnalysis:
        """Run the full pipeline over the session's buffered samples."""
        return analyze(self.session_samples(session_id), self.cfg)

    def end_session(self, session_id) -> bool:
        with self._registry_lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.debug("Closed stream buffer for session %s", session_id)
        return True

    def active_sessions(self) -> list:
        with self._registry_lock:
            return list(self._sessions)

    def __len__(self):
        with self._registry_lock:
            return len(self._sessions)
