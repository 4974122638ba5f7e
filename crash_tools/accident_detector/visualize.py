"""Diagnostic plot of one telemetry run: accel, rotation and speed traces,
real-time alert markers, and the full-pipeline verdict in the title."""

import numpy as np

from crash_tools.accident_detector.config import DetectorConfig, RealtimeConfig
from crash_tools.accident_detector.types import AlertLevel

ALERT_COLORS = {AlertLevel.MEDIUM: "orange", AlertLevel.HIGH: "red"}


def plot_run(samples, output_path, analysis=None, verdicts=None,
             cfg: DetectorConfig = None, realtime_cfg: RealtimeConfig = None):
    """Write a 3-panel figure for `samples` to `output_path`.

    `verdicts` (one RealtimeVerdict per sample, as from a replay) adds alert
    markers; `analysis` adds the verdict to the title.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    if cfg is None:
        cfg = DetectorConfig()
    if realtime_cfg is None:
        realtime_cfg = RealtimeConfig()

    samples = list(samples)
    if not samples:
        raise ValueError("no samples to plot")

    t0 = samples[0].timestamp_ms
    t = np.array([(s.timestamp_ms - t0) / 1000.0 for s in samples])
    accel = np.array([s.accel_magnitude for s in samples])
    rotation = np.array([s.rotation_magnitude for s in samples])
    speed = np.array([s.speed_kmh for s in samples])

    fig, axes = plt.subplots(3, 1, figsize=(12, 9), sharex=True)
    title = "Accident Detector — Run Diagnostics"
    if analysis is not None:
        title += (f"\n{analysis.detection_method.value}: confidence {analysis.confidence_score:.1f}, "
                  f"severity {analysis.severity.value}, impact {analysis.impact_force_g:.2f} g")
    fig.suptitle(title, fontsize=13, fontweight="bold")

    # ── Accel magnitude ────────────────────────────────────────────────────
    ax = axes[0]
    ax.plot(t, accel, color="steelblue", linewidth=1.2, label="|accel|")
    ax.axhline(cfg.high_impact_g, color="black", linestyle="--", linewidth=1.0,
               label=f"high impact {cfg.high_impact_g} g")
    ax.axhline(realtime_cfg.high_impact_g, color="gray", linestyle=":", linewidth=1.0,
               label=f"realtime high {realtime_cfg.high_impact_g} g")
    if verdicts:
        for level, color in ALERT_COLORS.items():
            idx = [i for i, v in enumerate(verdicts[: len(samples)]) if v.alert_level is level]
            if idx:
                ax.scatter(t[idx], accel[idx], color=color, s=30, zorder=3, label=f"{level.value} alert")
    ax.set_ylabel("Accel (g)")
    ax.legend(fontsize=8, loc="upper right")

    # ── Rotation magnitude ─────────────────────────────────────────────────
    ax = axes[1]
    ax.plot(t, rotation, color="seagreen", linewidth=1.2, label="|gyro|")
    ax.axhline(cfg.high_rotation_rad_s, color="black", linestyle="--", linewidth=1.0,
               label=f"high rotation {cfg.high_rotation_rad_s} rad/s")
    ax.axhline(cfg.rollover_rotation_rad_s, color="gray", linestyle=":", linewidth=1.0,
               label=f"rollover {cfg.rollover_rotation_rad_s} rad/s")
    ax.set_ylabel("Rotation (rad/s)")
    ax.legend(fontsize=8, loc="upper right")

    # ── Speed ──────────────────────────────────────────────────────────────
    ax = axes[2]
    ax.plot(t, speed, color="tomato", linewidth=1.2, label="speed")
    ax.set_ylabel("Speed (km/h)")
    ax.set_xlabel("Time since first sample (s)")
    ax.legend(fontsize=8, loc="upper right")

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    print(f"Saved: {output_path}")
    plt.close()
