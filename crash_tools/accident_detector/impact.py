"""Impact force, speed change and named accident-feature flags."""

from dataclasses import dataclass

from crash_tools.accident_detector.config import DetectorConfig
from crash_tools.accident_detector.types import AccidentFeatures, FeatureSet


@dataclass(frozen=True)
class ImpactReport:
    impact_force_g: float
    speed_change_kmh: float
    features: AccidentFeatures


def speed_change(samples) -> float:
    """max - min speed over the raw samples; 0 for fewer than two samples."""
    speeds = [s.speed_kmh for s in samples]
    if len(speeds) < 2:
        return 0.0
    return float(max(speeds) - min(speeds))


def detect_accident_features(features: FeatureSet, cfg: DetectorConfig = None) -> AccidentFeatures:
    if cfg is None:
        cfg = DetectorConfig()

    return AccidentFeatures(
        sudden_deceleration=features.speed_drop > cfg.sudden_decel_kmh,
        high_impact=features.max_accel > cfg.high_impact_g,
        rollover=(features.max_rotation > cfg.rollover_rotation_rad_s
                  and features.max_accel > cfg.rollover_accel_g),
        airbag_deployment=features.max_accel > cfg.airbag_accel_g,
        phone_dropped=(features.max_accel > cfg.phone_drop_accel_g
                       and features.accel_variance > cfg.phone_drop_variance),
    )


def analyze_impact(features: FeatureSet, samples, cfg: DetectorConfig = None) -> ImpactReport:
    if cfg is None:
        cfg = DetectorConfig()

    # Subtract the 1 g gravity baseline
    impact_force_g = max(0.0, features.max_accel - cfg.gravity_g)
    return ImpactReport(
        impact_force_g=impact_force_g,
        speed_change_kmh=speed_change(samples),
        features=detect_accident_features(features, cfg),
    )
