import logging

import pytest
from crash_tools.accident_detector.config import DetectorConfig
from crash_tools.accident_detector.pipeline import analyze, fallback_analysis
from crash_tools.accident_detector.tests.synthetic import (
    make_frontal_collision,
    make_normal_driving,
    make_sample,
    make_series,
    to_wire,
)
from crash_tools.accident_detector.types import DetectionMethod, Severity


CFG = DetectorConfig()


def _assert_fallback(result):
    assert result.detection_method is DetectionMethod.FALLBACK
    assert result.confidence_score == 50.0
    assert result.severity is Severity.MODERATE
    assert result.impact_force_g == 0.0
    assert result.speed_change_kmh == 0.0
    assert not any(result.features.to_dict().values())
    assert result.detection is None


def scenario_a():
    # accel ~9.5 g throughout, 80 → 20 km/h over 2 s, gyro peak 2 rad/s
    return make_series(
        accel_g=[9.0, 9.2, 9.5, 9.3, 9.1],
        speed_kmh=[80, 70, 50, 30, 20],
        rotation=[0.5, 1.0, 2.0, 1.5, 0.5],
        dt_ms=500,
    )


class TestAnalyze:
    def test_scenario_a(self):
        r = analyze(scenario_a(), CFG)
        assert r.detection_method is DetectionMethod.AUTOMATIC
        assert r.detection.is_accident
        assert r.detection.positive_count == 4
        assert r.confidence_score == pytest.approx(64.29)
        assert r.severity is Severity.SEVERE
        assert r.impact_force_g == pytest.approx(8.5)
        assert r.speed_change_kmh == pytest.approx(60.0)
        assert r.features.high_impact
        assert r.features.sudden_deceleration
        assert r.features.airbag_deployment
        assert not r.features.rollover

    def test_scenario_b(self):
        samples = make_series([1.5, 1.2, 1.0], [50, 49, 48], rotation=[0.1, 0.0, 0.05])
        r = analyze(samples, CFG)
        assert not r.detection.is_accident
        assert r.confidence_score == 0.0
        assert r.severity is Severity.MINOR

    def test_frontal_collision(self):
        r = analyze(make_frontal_collision(), CFG)
        assert r.detection.is_accident
        assert r.confidence_score > 70
        assert r.severity >= Severity.SEVERE

    def test_normal_driving(self):
        r = analyze(make_normal_driving(), CFG)
        assert not r.detection.is_accident
        assert r.severity is Severity.MINOR

    def test_single_sample(self):
        r = analyze([make_sample(accel=(0, 0, 3.0), speed=40.0)], CFG)
        assert r.detection_method is DetectionMethod.AUTOMATIC
        assert r.speed_change_kmh == 0.0
        assert 0.0 <= r.confidence_score <= 100.0

    def test_outputs_rounded(self):
        samples = make_series([1.0, 4.123456], [50.0, 43.21987])
        r = analyze(samples, CFG)
        assert r.impact_force_g == pytest.approx(3.12)
        assert r.speed_change_kmh == pytest.approx(6.78)

    def test_accepts_wire_payloads(self):
        samples = scenario_a()
        assert analyze([to_wire(s) for s in samples], CFG) == analyze(samples, CFG)

    def test_device_magnitude_does_not_hide_impact(self):
        payloads = [
            {"accelerometer": {"x": 9.0, "y": 0, "z": 0, "magnitude": 0.0},
             "gyroscope": {"x": 0, "y": 0, "z": 0}, "speed": 50.0, "timestamp": i * 100}
            for i in range(5)
        ]
        r = analyze(payloads, CFG)
        assert r.detection_method is DetectionMethod.AUTOMATIC
        assert r.impact_force_g == pytest.approx(8.0)
        assert r.features.high_impact

    def test_trim_policy_windows_every_stage(self):
        # Impact and speed loss happen more than 10 s before the last sample
        accel = [9.0] + [1.0] * 20
        speed = [80.0] + [0.0] * 20
        samples = make_series(accel, speed, dt_ms=1000)
        scored = analyze(samples, DetectorConfig(duration_window_policy="score"))
        trimmed = analyze(samples, DetectorConfig(duration_window_policy="trim"))
        assert scored.impact_force_g == pytest.approx(8.0)
        assert scored.speed_change_kmh == pytest.approx(80.0)
        assert trimmed.impact_force_g == 0.0
        assert trimmed.speed_change_kmh == 0.0
        assert not trimmed.features.high_impact

    def test_idempotent(self):
        samples = make_frontal_collision()
        a = analyze(samples, CFG)
        b = analyze(samples, CFG)
        assert a == b
        da, db = a.to_dict(), b.to_dict()
        da.pop("processingTime")
        db.pop("processingTime")
        assert da == db

    def test_processing_time_recorded(self):
        r = analyze(scenario_a(), CFG)
        assert r.processing_time_ms >= 0.0

    def test_to_dict_shape(self):
        d = analyze(scenario_a(), CFG).to_dict()
        assert d["severityLevel"] == "severe"
        assert d["detectionMethod"] == "automatic"
        assert d["modelVersion"] == "1.0.0"
        assert set(d["features"]) == {"suddenDeceleration", "highImpact", "rollover",
                                      "airbagDeployment", "phoneDropped"}


class TestFallback:
    def test_empty_input(self):
        _assert_fallback(analyze([], CFG))

    def test_none_input(self):
        _assert_fallback(analyze(None, CFG))

    def test_missing_field(self):
        payload = to_wire(make_sample())
        del payload["gyroscope"]
        _assert_fallback(analyze([payload], CFG))

    def test_non_numeric_field(self):
        payload = to_wire(make_sample())
        payload["speed"] = "fast"
        _assert_fallback(analyze([payload], CFG))

    def test_negative_speed(self):
        payload = to_wire(make_sample())
        payload["speed"] = -3.0
        _assert_fallback(analyze([payload], CFG))

    def test_one_bad_sample_spoils_the_batch(self):
        payloads = [to_wire(s) for s in scenario_a()]
        payloads[2]["accelerometer"].pop("z")
        _assert_fallback(analyze(payloads, CFG))

    def test_fallback_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="crash_tools.accident_detector.pipeline"):
            analyze([], CFG)
        assert "fallback" in caplog.text

    def test_tampered_sample_falls_back(self):
        s = make_sample(accel=(9.0, 0.0, 0.0))
        object.__setattr__(s, "accel_magnitude", 0.0)
        _assert_fallback(analyze([s], CFG))

    def test_fallback_matches_helper(self):
        assert analyze([], CFG) == fallback_analysis(CFG)
        assert fallback_analysis().is_fallback
