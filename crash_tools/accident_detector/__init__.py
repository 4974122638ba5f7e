"""Accident detector: decides from accelerometer, gyroscope and speed telemetry whether a collision occurred."""

from crash_tools.accident_detector.config import DetectorConfig, RealtimeConfig
from crash_tools.accident_detector.detector import detect_accident
from crash_tools.accident_detector.errors import EmptyInputError, MalformedSampleError
from crash_tools.accident_detector.features import extract_features
from crash_tools.accident_detector.pipeline import analyze, fallback_analysis
from crash_tools.accident_detector.realtime import RealtimeStreamAnalyzer, StreamBuffer, process_sample
from crash_tools.accident_detector.scoring import classify_severity, score_confidence
from crash_tools.accident_detector.types import (
    AccidentAnalysis,
    AlertLevel,
    DetectionMethod,
    FeatureSet,
    SensorSample,
    Severity,
    Vector3,
)

__all__ = [
    "SensorSample",
    "Vector3",
    "FeatureSet",
    "AccidentAnalysis",
    "Severity",
    "DetectionMethod",
    "AlertLevel",
    "DetectorConfig",
    "RealtimeConfig",
    "EmptyInputError",
    "MalformedSampleError",
    "extract_features",
    "detect_accident",
    "score_confidence",
    "classify_severity",
    "analyze",
    "fallback_analysis",
    "StreamBuffer",
    "process_sample",
    "RealtimeStreamAnalyzer",
]
