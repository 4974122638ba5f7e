"""Threshold detector: seven fixed indicator votes over a FeatureSet."""

from crash_tools.accident_detector.config import DetectorConfig
from crash_tools.accident_detector.types import DetectionResult, FeatureSet

INDICATORS = (
    "highImpact",
    "suddenDeceleration",
    "highRotation",
    "highJerk",
    "validDuration",
    "significantSpeedChange",
    "highAccelerationVariance",
)


def evaluate_indicators(features: FeatureSet, cfg: DetectorConfig = None) -> dict:
    if cfg is None:
        cfg = DetectorConfig()

    return {
        "highImpact": features.max_accel > cfg.high_impact_g,
        "suddenDeceleration": features.speed_drop > cfg.sudden_decel_kmh,
        "highRotation": features.max_rotation > cfg.high_rotation_rad_s,
        "highJerk": features.max_jerk > cfg.high_jerk,
        "validDuration": cfg.min_duration_s <= features.duration_s <= cfg.max_duration_s,
        "significantSpeedChange": features.speed_drop > cfg.significant_speed_change_kmh,
        "highAccelerationVariance": features.accel_variance > cfg.high_accel_variance,
    }


def detect_accident(features: FeatureSet, cfg: DetectorConfig = None) -> DetectionResult:
    """Vote the indicators; an accident needs cfg.min_positive_indicators (3) of 7."""
    if cfg is None:
        cfg = DetectorConfig()

    indicators = evaluate_indicators(features, cfg)
    positive = sum(1 for v in indicators.values() if v)
    return DetectionResult(
        indicators=indicators,
        positive_count=positive,
        total_count=len(indicators),
        is_accident=positive >= cfg.min_positive_indicators,
    )
