#!/usr/bin/env python3
"""Evaluation metrics for the accident detector over labelled telemetry runs.

Usage:
  crash-evaluate runs/ --labels runs/labels.csv
  python -m crash_tools.accident_detector.evaluate runs/ --labels labels.csv

The labels CSV has one row per run: `run,accident` where `run` is the file
path relative to the input directory or its bare file name (with or without
extension) and `accident` is 1/0 or true/false.
"""

import argparse
import logging
import os
import sys

import numpy as np
import pandas as pd
from tqdm import tqdm

from crash_tools.accident_detector.config import DetectorConfig, RealtimeConfig
from crash_tools.accident_detector.types import AlertLevel, Severity

logger = logging.getLogger(__name__)

LABELS = ["accident", "no_accident"]


def _label(flag) -> str:
    return "accident" if flag else "no_accident"


def classification_report(y_true: list, y_pred: list) -> dict:
    """Compute accuracy, per-class precision/recall/F1, and confusion matrix.

    y_true / y_pred are booleans (True = accident).
    Returns a dict with keys: accuracy, n, classes, confusion_matrix.
    """
    y_true = np.array([_label(v) for v in y_true])
    y_pred = np.array([_label(v) for v in y_pred])

    n = len(y_true)
    accuracy = float(np.mean(y_true == y_pred)) if n > 0 else 0.0

    results = {"accuracy": accuracy, "n": n, "classes": {}}

    for label in LABELS:
        tp = int(np.sum((y_pred == label) & (y_true == label)))
        fp = int(np.sum((y_pred == label) & (y_true != label)))
        fn = int(np.sum((y_pred != label) & (y_true == label)))
        prec = tp / (tp + fp) if (tp + fp) > 0 else 0.0
        rec = tp / (tp + fn) if (tp + fn) > 0 else 0.0
        f1 = 2 * prec * rec / (prec + rec) if (prec + rec) > 0 else 0.0
        results["classes"][label] = {"precision": prec, "recall": rec, "f1": f1,
                                     "tp": tp, "fp": fp, "fn": fn}

    # Confusion matrix: rows = true, cols = pred
    results["confusion_matrix"] = {
        t: {p: int(np.sum((y_true == t) & (y_pred == p))) for p in LABELS}
        for t in LABELS
    }

    return results


def severity_distribution(analyses: list) -> dict:
    """Count and fraction of each severity level, in severity order."""
    n = len(analyses)
    out = {}
    for level in sorted(Severity):
        count = sum(1 for a in analyses if a.severity is level)
        out[level.value] = {"count": count, "fraction": count / n if n > 0 else 0.0}
    return out


def alert_level_histogram(levels: list) -> dict:
    """Summarise real-time alert levels from a replayed stream."""
    n = len(levels)
    out = {}
    for level in sorted(AlertLevel):
        count = sum(1 for lv in levels if lv is level)
        out[level.value] = {"count": count, "fraction": count / n if n > 0 else 0.0}
    return out


def replay_stream(samples, realtime_cfg: RealtimeConfig = None) -> list:
    """Feed samples one at a time through a fresh StreamBuffer; returns verdicts."""
    from crash_tools.accident_detector.realtime import StreamBuffer, process_sample

    if realtime_cfg is None:
        realtime_cfg = RealtimeConfig()
    buffer = StreamBuffer(realtime_cfg.buffer_size)
    return [process_sample(s, buffer, realtime_cfg) for s in samples]


def evaluate_runs(runs: dict, labels: dict, cfg: DetectorConfig = None,
                  realtime_cfg: RealtimeConfig = None) -> pd.DataFrame:
    """Analyze each labelled run. `runs` maps run name -> samples.

    Returns one row per run with the label, verdict, confidence, severity,
    detection method and the peak real-time alert level seen on replay.
    """
    from crash_tools.accident_detector.pipeline import analyze

    if cfg is None:
        cfg = DetectorConfig()

    rows = []
    for name, samples in tqdm(runs.items(), desc="Evaluating runs", disable=len(runs) < 2):
        analysis = analyze(samples, cfg)
        # A fallback carries no indicator votes and counts as "no accident"
        predicted = analysis.detection.is_accident if analysis.detection is not None else False
        verdicts = replay_stream(samples, realtime_cfg) if not analysis.is_fallback else []
        peak = max((v.alert_level for v in verdicts), default=AlertLevel.LOW)
        rows.append({
            "run": name,
            "label": bool(labels.get(name, False)),
            "predicted": bool(predicted),
            "confidence": analysis.confidence_score,
            "severity": analysis.severity,
            "detection_method": analysis.detection_method.value,
            "peak_alert": peak,
            "analysis": analysis,
        })
    return pd.DataFrame(rows)


def print_report(results: dict, severity: dict = None, alerts: dict = None):
    """Pretty-print evaluation results to stdout."""
    print(f"\n{'='*55}")
    print(f"  Accuracy: {results['accuracy']:.1%}  (n={results['n']})")
    print(f"{'='*55}")
    print(f"  {'Class':<12} {'Prec':>6} {'Rec':>6} {'F1':>6}  (TP/FP/FN)")
    print(f"  {'-'*50}")
    for label, m in results["classes"].items():
        print(f"  {label:<12} {m['precision']:6.3f} {m['recall']:6.3f} {m['f1']:6.3f}"
              f"  ({m['tp']}/{m['fp']}/{m['fn']})")

    cm = results["confusion_matrix"]
    labels = list(cm.keys())
    print(f"\n  Confusion matrix (rows=true, cols=pred):")
    header = "  " + " " * 12 + "  ".join(f"{l:>11}" for l in labels)
    print(header)
    for t in labels:
        row = "  " + f"{t:<12}" + "  ".join(f"{cm[t][p]:>11}" for p in labels)
        print(row)

    if severity:
        print(f"\n  Severity distribution:")
        for level, m in severity.items():
            print(f"    {level:<10} {m['fraction']:.1%} ({m['count']})")

    if alerts:
        print(f"\n  Peak real-time alert per run:")
        for level, m in alerts.items():
            print(f"    {level:<10} {m['fraction']:.1%} ({m['count']})")

    print()


def load_labels(path: str) -> dict:
    df = pd.read_csv(path)
    if "run" not in df.columns or "accident" not in df.columns:
        raise ValueError(f"{path}: labels CSV needs 'run' and 'accident' columns")
    truthy = {"1", "true", "yes", "y"}
    return {
        os.path.splitext(str(r).replace("\\", "/"))[0]: str(a).strip().lower() in truthy
        for r, a in zip(df["run"], df["accident"])
    }


def run_key(path: str, input_dir: str) -> str:
    """Run name: path relative to input_dir, without extension, '/'-separated."""
    rel = os.path.relpath(path, input_dir)
    return os.path.splitext(rel)[0].replace(os.sep, "/")


def match_labelled_runs(paths, input_dir: str, labels: dict) -> dict:
    """Pair run files with their labels: {run key: (path, label)}.

    Runs are keyed by relative path, so files that share a name in different
    subdirectories stay distinct. A label matches a run by its relative key
    or, failing that, by the bare file name.
    """
    matched = {}
    by_stem = {}
    for path in paths:
        key = run_key(path, input_dir)
        stem = key.rsplit("/", 1)[-1]
        if key in labels:
            matched[key] = (path, labels[key])
        elif stem in labels:
            matched[key] = (path, labels[stem])
            by_stem.setdefault(stem, []).append(key)
    for stem, keys in by_stem.items():
        if len(keys) > 1:
            logger.warning("Label %r matches %d runs by file name: %s", stem, len(keys), ", ".join(keys))
    return matched


def main():
    parser = argparse.ArgumentParser(
        description="Evaluate the accident detector against labelled telemetry runs.",
    )
    parser.add_argument("input", help="Directory of telemetry runs (CSV/Parquet/JSON)")
    parser.add_argument("--labels", required=True, help="CSV with columns run,accident")
    parser.add_argument("--window-policy", choices=["score", "trim"], default="score",
                        help="Duration window handling (default: score)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    from crash_tools.data_io import find_runs, load_samples

    if not os.path.isdir(args.input):
        print(f"ERROR: Input directory not found: {args.input}")
        sys.exit(1)
    try:
        labels = load_labels(args.labels)
    except (OSError, ValueError) as e:
        print(f"ERROR: Could not read labels: {e}")
        sys.exit(1)

    runs = {}
    run_labels = {}
    for name, (path, label) in match_labelled_runs(find_runs(args.input), args.input, labels).items():
        run_labels[name] = label
        try:
            runs[name] = load_samples(path)
        except (OSError, ValueError) as e:
            # Unreadable runs go through the pipeline as empty input → fallback
            print(f"WARNING: {path}: {e}")
            runs[name] = []

    if not runs:
        print(f"ERROR: No labelled runs found in {args.input}")
        sys.exit(1)

    cfg = DetectorConfig(duration_window_policy=args.window_policy)
    df = evaluate_runs(runs, run_labels, cfg)

    results = classification_report(df["label"].tolist(), df["predicted"].tolist())
    severity = severity_distribution(df["analysis"].tolist())
    alerts = alert_level_histogram(df["peak_alert"].tolist())
    print_report(results, severity, alerts)

    fallbacks = int((df["detection_method"] == "fallback").sum())
    if fallbacks:
        print(f"  {fallbacks} runs fell back (unreadable or malformed samples)")


if __name__ == "__main__":
    main()
