"""Feature extraction: reduces an ordered run of sensor samples to a FeatureSet."""

import numpy as np

from crash_tools.accident_detector.config import DetectorConfig
from crash_tools.accident_detector.errors import EmptyInputError
from crash_tools.accident_detector.types import FeatureSet


def window_samples(samples, max_duration_s: float) -> list:
    """Keep the trailing samples that fall within max_duration_s of the last one."""
    samples = list(samples)
    if not samples:
        return samples
    cutoff = samples[-1].timestamp_ms - max_duration_s * 1000.0
    return [s for s in samples if s.timestamp_ms >= cutoff]


def select_window(samples, cfg: DetectorConfig) -> list:
    """Apply the duration-window policy: "trim" keeps the trailing max_duration_s."""
    samples = list(samples) if samples is not None else []
    if cfg.duration_window_policy == "trim":
        return window_samples(samples, cfg.max_duration_s)
    return samples


def _max_jerk(accel: np.ndarray, t_ms: np.ndarray) -> float:
    """Largest |Δa|/Δt over adjacent pairs, skipping pairs with Δt ≤ 0."""
    if len(accel) < 2:
        return 0.0
    dt = np.diff(t_ms) / 1000.0
    da = np.abs(np.diff(accel))
    valid = dt > 0
    if not np.any(valid):
        return 0.0
    return float(np.max(da[valid] / dt[valid]))


def extract_features(samples, cfg: DetectorConfig = None) -> FeatureSet:
    """Compute accel, rotation, speed, duration and jerk statistics.

    Samples are taken in the order given; they are assumed to be time-ordered
    already and are never sorted or mutated. Raises EmptyInputError when there
    is nothing to extract from.
    """
    if cfg is None:
        cfg = DetectorConfig()
    return compute_features(select_window(samples, cfg))


def compute_features(samples) -> FeatureSet:
    """Statistics over an already-windowed list of samples."""
    if not samples:
        raise EmptyInputError()

    accel = np.array([s.accel_magnitude for s in samples], dtype=float)
    rotation = np.array([s.rotation_magnitude for s in samples], dtype=float)
    speed = np.array([s.speed_kmh for s in samples], dtype=float)
    t_ms = np.array([s.timestamp_ms for s in samples], dtype=float)

    # Population variance (ddof=0)
    accel_variance = float(np.var(accel))

    max_speed = float(np.max(speed))
    min_speed = float(np.min(speed))

    duration_s = max(0.0, float(t_ms[-1] - t_ms[0]) / 1000.0)

    return FeatureSet(
        max_accel=float(np.max(accel)),
        avg_accel=float(np.mean(accel)),
        accel_variance=accel_variance,
        max_rotation=float(np.max(rotation)),
        avg_rotation=float(np.mean(rotation)),
        max_speed=max_speed,
        min_speed=min_speed,
        avg_speed=float(np.mean(speed)),
        speed_drop=max_speed - min_speed,
        duration_s=duration_s,
        max_jerk=_max_jerk(accel, t_ms),
        sample_count=len(samples),
    )
