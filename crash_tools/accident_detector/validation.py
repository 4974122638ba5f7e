"""Coercion of raw sensor payloads into SensorSample values.

Devices post readings in the mobile app's wire shape::

    {"accelerometer": {"x": .., "y": .., "z": ..},
     "gyroscope": {"x": .., "y": .., "z": ..},
     "speed": 42.0,
     "timestamp": "2024-03-01T12:00:00.250Z"}

snake_case keys (accel/gyro/speed_kmh/timestamp_ms) are accepted as well.
Timestamps may be epoch milliseconds, ISO-8601 strings or datetimes. A
"magnitude" reported by the device is ignored; it is recomputed from the axes.
"""

import math
import numbers
from collections.abc import Mapping
from datetime import datetime

import pandas as pd

from crash_tools.accident_detector.errors import EmptyInputError, MalformedSampleError
from crash_tools.accident_detector.types import SensorSample, Vector3

_ACCEL_KEYS = ("accelerometer", "accel")
_GYRO_KEYS = ("gyroscope", "gyro")
_SPEED_KEYS = ("speed", "speed_kmh", "speedKmh")
_TIMESTAMP_KEYS = ("timestamp", "timestamp_ms", "timestampMs")


def _lookup(payload: Mapping, keys: tuple, field_name: str, index):
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    raise MalformedSampleError(field_name, "is missing", index)


def _number(value, field_name: str, index) -> float:
    # bool is an Integral subclass; a True speed is a client bug, not 1 km/h
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise MalformedSampleError(field_name, f"must be numeric, got {type(value).__name__}", index)
    value = float(value)
    if not math.isfinite(value):
        raise MalformedSampleError(field_name, "must be finite", index)
    return value


def _vector(payload, field_name: str, index) -> Vector3:
    if isinstance(payload, Vector3):
        return Vector3(
            _number(payload.x, f"{field_name}.x", index),
            _number(payload.y, f"{field_name}.y", index),
            _number(payload.z, f"{field_name}.z", index),
        )
    if not isinstance(payload, Mapping):
        raise MalformedSampleError(field_name, "must be an object with x, y, z", index)
    axes = []
    for axis in ("x", "y", "z"):
        if axis not in payload:
            raise MalformedSampleError(f"{field_name}.{axis}", "is missing", index)
        axes.append(_number(payload[axis], f"{field_name}.{axis}", index))
    return Vector3(*axes)


def parse_timestamp_ms(value, index=None) -> int:
    """Convert epoch milliseconds, an ISO-8601 string or a datetime to epoch ms."""
    if isinstance(value, (str, datetime, pd.Timestamp)):
        try:
            ts = pd.Timestamp(value)
        except (ValueError, TypeError) as e:
            raise MalformedSampleError("timestamp", f"is not a valid date ({e})", index) from e
        if ts is pd.NaT:
            raise MalformedSampleError("timestamp", "is not a valid date", index)
        return int(ts.value // 1_000_000)
    return int(_number(value, "timestamp", index))


def validate_sample(sample: SensorSample, index=None) -> SensorSample:
    """Check an already-built SensorSample; returns it unchanged when valid."""
    _vector(sample.accel, "accelerometer", index)
    _vector(sample.gyro, "gyroscope", index)
    speed = _number(sample.speed_kmh, "speed", index)
    if speed < 0:
        raise MalformedSampleError("speed", "must be >= 0", index)
    if isinstance(sample.timestamp_ms, bool) or not isinstance(sample.timestamp_ms, numbers.Integral):
        raise MalformedSampleError("timestamp", "must be integer milliseconds", index)
    magnitude = _number(sample.accel_magnitude, "accelerometer.magnitude", index)
    if not math.isclose(magnitude, sample.accel.magnitude, rel_tol=1e-9, abs_tol=1e-12):
        raise MalformedSampleError("accelerometer.magnitude", "does not match the accelerometer axes", index)
    return sample


def sample_from_dict(payload: Mapping, index=None) -> SensorSample:
    accel = _vector(_lookup(payload, _ACCEL_KEYS, "accelerometer", index), "accelerometer", index)
    gyro = _vector(_lookup(payload, _GYRO_KEYS, "gyroscope", index), "gyroscope", index)

    speed = _number(_lookup(payload, _SPEED_KEYS, "speed", index), "speed", index)
    if speed < 0:
        raise MalformedSampleError("speed", "must be >= 0", index)

    timestamp_ms = parse_timestamp_ms(_lookup(payload, _TIMESTAMP_KEYS, "timestamp", index), index)

    return SensorSample(
        accel=accel,
        gyro=gyro,
        speed_kmh=speed,
        timestamp_ms=timestamp_ms,
    )


def coerce_sample(sample, index=None) -> SensorSample:
    if isinstance(sample, SensorSample):
        return validate_sample(sample, index)
    if isinstance(sample, Mapping):
        return sample_from_dict(sample, index)
    raise MalformedSampleError("sample", f"must be a SensorSample or mapping, got {type(sample).__name__}", index)


def coerce_samples(samples) -> list:
    """Validate a batch of samples. Raises EmptyInputError / MalformedSampleError."""
    if samples is None:
        raise EmptyInputError()
    samples = list(samples)
    if not samples:
        raise EmptyInputError()
    return [coerce_sample(s, i) for i, s in enumerate(samples)]

