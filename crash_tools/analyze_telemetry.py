#!/usr/bin/env python3
"""Run the accident detector over recorded telemetry.

Analyzes each run with the full pipeline and, with --replay, streams it sample
by sample through the real-time analyzer to show when pre-alerts would fire.

Usage:
  python -m crash_tools.analyze_telemetry crash_run.csv --replay
  python -m crash_tools.analyze_telemetry runs/ --json
  crash-analyze crash_run.json --plot crash_run.png
"""

import argparse
import json
import logging
import os
import sys

from crash_tools.accident_detector.config import DetectorConfig, RealtimeConfig
from crash_tools.accident_detector.pipeline import analyze
from crash_tools.accident_detector.realtime import RealtimeStreamAnalyzer
from crash_tools.accident_detector.repository import (
    DEFAULT_ESCALATION_THRESHOLD,
    InMemoryAccidentRepository,
    submit_report,
)
from crash_tools.accident_detector.types import AlertLevel
from crash_tools.data_io import find_runs, load_samples


def collect_inputs(input_path):
    if os.path.isfile(input_path):
        return [input_path]
    if os.path.isdir(input_path):
        runs = find_runs(input_path)
        if not runs:
            print(f"ERROR: No telemetry files found in {input_path}")
            sys.exit(1)
        return runs
    print(f"ERROR: Input not found: {input_path}")
    sys.exit(1)


def replay(samples, session_id, analyzer: RealtimeStreamAnalyzer):
    """Stream samples through the real-time analyzer.

    Whenever a pre-alert asks for it, the full pipeline is run on the buffered
    window. Returns (verdicts, list of (sample index, AccidentAnalysis)).
    """
    verdicts = []
    triggered = []
    try:
        for i, sample in enumerate(samples):
            verdict = analyzer.push(session_id, sample)
            verdicts.append(verdict)
            if verdict.should_trigger_full_analysis:
                triggered.append((i, analyzer.analyze_session(session_id)))
    finally:
        analyzer.end_session(session_id)
    return verdicts, triggered


def print_analysis(name, analysis):
    print(f"\n{name}")
    print(f"  Method:       {analysis.detection_method.value}")
    print(f"  Confidence:   {analysis.confidence_score:.2f}")
    print(f"  Severity:     {analysis.severity.value}")
    print(f"  Impact force: {analysis.impact_force_g:.2f} g")
    print(f"  Speed change: {analysis.speed_change_kmh:.2f} km/h")
    if analysis.detection is not None:
        d = analysis.detection
        votes = ", ".join(k for k, v in d.indicators.items() if v) or "none"
        print(f"  Indicators:   {d.positive_count}/{d.total_count} ({votes})")
        print(f"  Accident:     {'yes' if d.is_accident else 'no'}")
    flags = [k for k, v in analysis.features.to_dict().items() if v]
    print(f"  Features:     {', '.join(flags) if flags else 'none'}")


def print_replay(verdicts, triggered):
    counts = {level: 0 for level in AlertLevel}
    for v in verdicts:
        counts[v.alert_level] += 1
    summary = "  ".join(f"{level.value}={counts[level]}" for level in sorted(AlertLevel))
    print(f"  Replay:       {summary}")
    for idx, result in triggered:
        print(f"    sample {idx:>4}: full analysis -> {result.severity.value} "
              f"({result.confidence_score:.2f}, {result.detection_method.value})")


def main():
    parser = argparse.ArgumentParser(
        description="Detect vehicle accidents in recorded motion telemetry.",
    )
    parser.add_argument("input", help="Telemetry file (CSV/Parquet/JSON) or directory of runs")
    parser.add_argument("--replay", action="store_true",
                        help="Also stream each run through the real-time analyzer")
    parser.add_argument("--plot", default=None, metavar="PATH",
                        help="Save a diagnostic plot (single input only)")
    parser.add_argument("--json", action="store_true",
                        help="Print analyses as JSON instead of text")
    parser.add_argument("--window-policy", choices=["score", "trim"], default="score",
                        help="'score' only scores the 0.5–10 s duration window; "
                             "'trim' slices each run to its last 10 s first")
    parser.add_argument("--high-impact-g", type=float, default=5.0,
                        help="Peak accel for the high-impact indicator (default: 5.0 g)")
    parser.add_argument("--sudden-decel-kmh", type=float, default=30.0,
                        help="Speed drop for the sudden-deceleration indicator (default: 30 km/h)")
    parser.add_argument("--escalate-at", type=float, default=DEFAULT_ESCALATION_THRESHOLD,
                        help="Confidence at which a report is escalated (default: 70)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    cfg = DetectorConfig(
        duration_window_policy=args.window_policy,
        high_impact_g=args.high_impact_g,
        sudden_decel_kmh=args.sudden_decel_kmh,
    )
    realtime_cfg = RealtimeConfig()
    analyzer = RealtimeStreamAnalyzer(cfg, realtime_cfg)
    repository = InMemoryAccidentRepository()

    paths = collect_inputs(args.input)
    if args.plot and len(paths) > 1:
        print("ERROR: --plot needs a single input file")
        sys.exit(1)

    json_out = []
    for path in paths:
        name = os.path.basename(path)
        try:
            samples = load_samples(path)
        except (OSError, ValueError) as e:
            # Still produce the fallback verdict so the run is accounted for
            print(f"WARNING: {path}: {e}")
            samples = []

        outcome = submit_report(samples, repository, cfg,
                                escalation_threshold=args.escalate_at, source=path)
        analysis = outcome.analysis

        verdicts, triggered = [], []
        if args.replay and samples:
            verdicts, triggered = replay(samples, name, analyzer)

        if args.json:
            entry = {"run": name, "escalate": outcome.escalate, **analysis.to_dict()}
            if args.replay:
                entry["alerts"] = [v.alert_level.value for v in verdicts]
            json_out.append(entry)
        else:
            print_analysis(name, analysis)
            if outcome.escalate:
                print(f"  ESCALATE: confidence >= {args.escalate_at:g}")
            if args.replay:
                print_replay(verdicts, triggered)

        if args.plot and samples:
            from crash_tools.accident_detector.visualize import plot_run
            if not verdicts:
                from crash_tools.accident_detector.evaluate import replay_stream
                verdicts = replay_stream(samples, realtime_cfg)
            plot_run(samples, args.plot, analysis=analysis, verdicts=verdicts,
                     cfg=cfg, realtime_cfg=realtime_cfg)

    if args.json:
        print(json.dumps(json_out, indent=2))
    else:
        escalated = repository.find(min_confidence=args.escalate_at)
        print(f"\n{len(repository)} runs analyzed, {len(escalated)} escalated")


if __name__ == "__main__":
    main()
