"""End-to-end accident analysis: samples in, AccidentAnalysis out.

analyze() never raises. Input that cannot be analyzed (no samples, malformed
samples, or an unexpected failure in any stage) produces the fixed fallback
analysis, marked with DetectionMethod.FALLBACK, so an accident report can
still be filed and escalated by a human.
"""

import logging
import time

from crash_tools.accident_detector.config import DetectorConfig
from crash_tools.accident_detector.detector import detect_accident
from crash_tools.accident_detector.features import compute_features, select_window
from crash_tools.accident_detector.impact import analyze_impact
from crash_tools.accident_detector.scoring import classify_severity, score_confidence
from crash_tools.accident_detector.types import (
    AccidentAnalysis,
    AccidentFeatures,
    DetectionMethod,
    Severity,
)
from crash_tools.accident_detector.validation import coerce_samples

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 50.0


def fallback_analysis(cfg: DetectorConfig = None) -> AccidentAnalysis:
    if cfg is None:
        cfg = DetectorConfig()
    return AccidentAnalysis(
        confidence_score=FALLBACK_CONFIDENCE,
        severity=Severity.MODERATE,
        impact_force_g=0.0,
        speed_change_kmh=0.0,
        detection_method=DetectionMethod.FALLBACK,
        features=AccidentFeatures(),
        model_version=cfg.model_version,
        detection=None,
    )


def _run(samples, cfg: DetectorConfig) -> AccidentAnalysis:
    samples = select_window(coerce_samples(samples), cfg)

    features = compute_features(samples)
    detection = detect_accident(features, cfg)
    confidence = score_confidence(features, detection, cfg)
    # Severity sees the unrounded confidence
    severity = classify_severity(features, confidence, cfg)
    impact = analyze_impact(features, samples, cfg)

    ndigits = cfg.output_decimals
    return AccidentAnalysis(
        confidence_score=round(confidence, ndigits),
        severity=severity,
        impact_force_g=round(impact.impact_force_g, ndigits),
        speed_change_kmh=round(impact.speed_change_kmh, ndigits),
        detection_method=DetectionMethod.AUTOMATIC,
        features=impact.features,
        model_version=cfg.model_version,
        detection=detection,
    )


def analyze(samples, cfg: DetectorConfig = None) -> AccidentAnalysis:
    """Run extract → detect → score → classify → impact over one batch.

    `samples` may hold SensorSample values or raw wire payloads (dicts); both
    are validated before extraction.
    """
    if cfg is None:
        cfg = DetectorConfig()

    start = time.perf_counter()
    try:
        result = _run(samples, cfg)
    except Exception as e:
        logger.warning("Accident analysis failed, returning fallback: %s", e)
        result = fallback_analysis(cfg)
    result.processing_time_ms = (time.perf_counter() - start) * 1000.0
    return result
