import functools
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Vector3:
    x: float
    y: float
    z: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)


@dataclass(frozen=True)
class SensorSample:
    """One timestamped motion-sensor reading.

    accel is in g, gyro in rad/s, speed in km/h. accel_magnitude is always
    computed once from the accel axes; it is not a constructor argument.
    """
    accel: Vector3
    gyro: Vector3
    speed_kmh: float
    timestamp_ms: int
    accel_magnitude: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "accel_magnitude", self.accel.magnitude)

    @property
    def rotation_magnitude(self) -> float:
        return self.gyro.magnitude


@dataclass(frozen=True)
class FeatureSet:
    max_accel: float
    avg_accel: float
    accel_variance: float
    max_rotation: float
    avg_rotation: float
    max_speed: float
    min_speed: float
    avg_speed: float
    speed_drop: float
    duration_s: float
    max_jerk: float
    sample_count: int

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class DetectionResult:
    indicators: dict    # indicator name -> bool, see detector.INDICATORS
    positive_count: int
    total_count: int
    is_accident: bool


@functools.total_ordering
class Severity(Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank


_SEVERITY_ORDER = [Severity.MINOR, Severity.MODERATE, Severity.SEVERE, Severity.CRITICAL]


class DetectionMethod(Enum):
    AUTOMATIC = "automatic"
    FALLBACK = "fallback"


@functools.total_ordering
class AlertLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _ALERT_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, AlertLevel):
            return NotImplemented
        return self.rank < other.rank


_ALERT_ORDER = [AlertLevel.LOW, AlertLevel.MEDIUM, AlertLevel.HIGH]


@dataclass(frozen=True)
class AccidentFeatures:
    sudden_deceleration: bool = False
    high_impact: bool = False
    rollover: bool = False
    airbag_deployment: bool = False  # estimated from peak accel, not a sensor signal
    phone_dropped: bool = False

    def to_dict(self) -> dict:
        return {
            "suddenDeceleration": self.sudden_deceleration,
            "highImpact": self.high_impact,
            "rollover": self.rollover,
            "airbagDeployment": self.airbag_deployment,
            "phoneDropped": self.phone_dropped,
        }


@dataclass
class AccidentAnalysis:
    """Final verdict for one batch of samples."""
    confidence_score: float    # 0–100
    severity: Severity
    impact_force_g: float
    speed_change_kmh: float
    detection_method: DetectionMethod
    features: AccidentFeatures = field(default_factory=AccidentFeatures)
    model_version: str = "1.0.0"
    detection: Optional[DetectionResult] = None
    processing_time_ms: float = field(default=0.0, compare=False)

    @property
    def is_fallback(self) -> bool:
        return self.detection_method is DetectionMethod.FALLBACK

    def to_dict(self) -> dict:
        """Wire representation consumed by the reporting and dashboard layers."""
        return {
            "confidenceScore": self.confidence_score,
            "severityLevel": self.severity.value,
            "impactForce": self.impact_force_g,
            "speedChange": self.speed_change_kmh,
            "detectionMethod": self.detection_method.value,
            "modelVersion": self.model_version,
            "processingTime": self.processing_time_ms,
            "features": self.features.to_dict(),
        }


@dataclass(frozen=True)
class QuickChecks:
    high_impact: bool
    sudden_stop: bool
    phone_dropped: bool


@dataclass
class RealtimeVerdict:
    alert_level: AlertLevel
    quick_checks: QuickChecks
    should_trigger_full_analysis: bool
    buffer_size: int
    samples: tuple = ()   # snapshot of the buffer after the push, oldest first
