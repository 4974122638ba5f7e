"""Shared telemetry loading for crash tools."""

import json
import os

import pandas as pd

from crash_tools.accident_detector.validation import coerce_samples

RUN_EXTENSIONS = (".csv", ".parquet", ".json")

# Column name mappings - phone loggers and the mobile app use various conventions
COLUMN_MAPPINGS = {
    "accel_x": ["accel_x", "ax", "accelerometer_x", "accelerometer.x", "acc_x"],
    "accel_y": ["accel_y", "ay", "accelerometer_y", "accelerometer.y", "acc_y"],
    "accel_z": ["accel_z", "az", "accelerometer_z", "accelerometer.z", "acc_z"],
    "gyro_x": ["gyro_x", "gx", "gyroscope_x", "gyroscope.x"],
    "gyro_y": ["gyro_y", "gy", "gyroscope_y", "gyroscope.y"],
    "gyro_z": ["gyro_z", "gz", "gyroscope_z", "gyroscope.z"],
    "speed_kmh": ["speed_kmh", "speed", "speedKmh"],
    "timestamp_ms": ["timestamp_ms", "timestamp", "timestampMs", "time_ms"],
}

REQUIRED_COLUMNS = list(COLUMN_MAPPINGS)


def resolve_columns(columns) -> dict:
    """Map canonical column names to the names present in `columns`."""
    present = set(columns)
    resolved = {}
    for canonical, candidates in COLUMN_MAPPINGS.items():
        for name in candidates:
            if name in present:
                resolved[canonical] = name
                break
    missing = [c for c in REQUIRED_COLUMNS if c not in resolved]
    if missing:
        raise ValueError(f"missing telemetry columns: {', '.join(missing)}")
    return resolved


def samples_from_frame(df: pd.DataFrame) -> list:
    """Convert a flat telemetry DataFrame (one row per reading) to SensorSamples."""
    cols = resolve_columns(df.columns)
    payloads = []
    for row in df.to_dict(orient="records"):
        payloads.append({
            "accelerometer": {
                "x": row[cols["accel_x"]],
                "y": row[cols["accel_y"]],
                "z": row[cols["accel_z"]],
            },
            "gyroscope": {
                "x": row[cols["gyro_x"]],
                "y": row[cols["gyro_y"]],
                "z": row[cols["gyro_z"]],
            },
            "speed": row[cols["speed_kmh"]],
            "timestamp": row[cols["timestamp_ms"]],
        })
    return coerce_samples(payloads)


def _json_payloads(data):
    if isinstance(data, dict):
        for key in ("sensorData", "samples", "readings"):
            if key in data:
                return data[key]
        raise ValueError("JSON object has no sensorData/samples/readings list")
    return data


def load_samples(input_path):
    """Load a telemetry run from CSV, Parquet, or JSON.

    Returns a list of validated SensorSample, ordered as recorded. Raises
    OSError when the file is missing and ValueError (including EmptyInputError
    and MalformedSampleError) when its content cannot be used.
    """
    if not os.path.isfile(input_path):
        raise FileNotFoundError(input_path)

    if input_path.endswith(".json"):
        with open(input_path) as f:
            data = json.load(f)
        return coerce_samples(_json_payloads(data))

    if input_path.endswith(".parquet"):
        df = pd.read_parquet(input_path)
    else:
        df = pd.read_csv(input_path)
    return samples_from_frame(df)


def find_runs(input_dir):
    """Return sorted telemetry run files under `input_dir`."""
    runs = []
    for root, _dirs, files in os.walk(input_dir):
        for name in files:
            if name.endswith(RUN_EXTENSIONS):
                runs.append(os.path.join(root, name))
    return sorted(runs)
