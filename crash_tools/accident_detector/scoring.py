"""Confidence scoring and severity classification."""

from crash_tools.accident_detector.config import DetectorConfig
from crash_tools.accident_detector.types import DetectionResult, FeatureSet, Severity


def score_confidence(
    features: FeatureSet,
    detection: DetectionResult,
    cfg: DetectorConfig = None,
) -> float:
    """Return a 0–100 heuristic confidence that the run is an accident.

    Up to cfg.indicator_weight (60) points come from the share of positive
    indicators. Strong signals add fixed bonuses and weak signals subtract
    fixed penalties; all adjustments are summed before a single clamp, so the
    result does not depend on the order they are listed in.
    """
    if cfg is None:
        cfg = DetectorConfig()

    confidence = 0.0
    if detection.total_count > 0:
        confidence += detection.positive_count / detection.total_count * cfg.indicator_weight

    # Bonuses
    if features.max_accel > cfg.very_high_impact_g:
        confidence += cfg.very_high_impact_bonus
    if features.speed_drop > cfg.very_sudden_decel_kmh:
        confidence += cfg.very_sudden_decel_bonus
    if features.max_rotation > cfg.very_high_rotation_rad_s:
        confidence += cfg.very_high_rotation_bonus

    # Penalties
    if features.max_accel < cfg.weak_impact_g:
        confidence -= cfg.weak_impact_penalty
    if features.speed_drop < cfg.weak_speed_drop_kmh:
        confidence -= cfg.weak_speed_drop_penalty
    if features.sample_count < cfg.min_sample_count:
        confidence -= cfg.few_samples_penalty

    return max(0.0, min(100.0, confidence))


def classify_severity(features: FeatureSet, confidence: float, cfg: DetectorConfig = None) -> Severity:
    """Ordered decision list; the first matching rule wins."""
    if cfg is None:
        cfg = DetectorConfig()

    if confidence > cfg.critical_confidence and features.max_accel > cfg.critical_accel_g:
        return Severity.CRITICAL
    elif confidence > cfg.severe_confidence or features.max_accel > cfg.severe_accel_g:
        return Severity.SEVERE
    elif confidence > cfg.moderate_confidence or features.max_accel > cfg.moderate_accel_g:
        return Severity.MODERATE
    else:
        return Severity.MINOR
