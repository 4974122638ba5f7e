import threading

import pytest
from crash_tools.accident_detector.config import RealtimeConfig
from crash_tools.accident_detector.errors import MalformedSampleError
from crash_tools.accident_detector.realtime import RealtimeStreamAnalyzer, StreamBuffer, process_sample
from crash_tools.accident_detector.tests.synthetic import make_frontal_collision, make_sample, to_wire
from crash_tools.accident_detector.types import AlertLevel, DetectionMethod


CFG = RealtimeConfig()


def calm(t_ms=0, speed=50.0):
    return make_sample(accel=(0.0, 0.0, 1.0), speed=speed, t_ms=t_ms)


def spike(g, t_ms=0, speed=50.0):
    return make_sample(accel=(0.0, 0.0, g), speed=speed, t_ms=t_ms)


class TestStreamBuffer:
    def test_fifo_capacity(self):
        buf = StreamBuffer(10)
        for i in range(12):
            process_sample(calm(t_ms=i * 100), buf, CFG)
        assert len(buf) == 10
        assert [s.timestamp_ms for s in buf] == [i * 100 for i in range(2, 12)]

    def test_verdict_carries_snapshot(self):
        buf = StreamBuffer(10)
        v1 = process_sample(calm(t_ms=0), buf, CFG)
        v2 = process_sample(calm(t_ms=100), buf, CFG)
        assert v1.buffer_size == 1
        assert len(v1.samples) == 1
        assert [s.timestamp_ms for s in v2.samples] == [0, 100]


class TestQuickChecks:
    def test_calm_sample_is_low(self):
        v = process_sample(calm(), StreamBuffer(), CFG)
        assert v.alert_level is AlertLevel.LOW
        assert not v.should_trigger_full_analysis

    def test_high_impact_on_empty_buffer(self):
        v = process_sample(spike(8.5), StreamBuffer(), CFG)
        assert v.quick_checks.high_impact
        assert not v.quick_checks.sudden_stop
        assert v.alert_level is AlertLevel.HIGH
        assert v.should_trigger_full_analysis

    def test_sudden_stop_between_consecutive_samples(self):
        buf = StreamBuffer()
        process_sample(calm(t_ms=0, speed=60.0), buf, CFG)
        v = process_sample(calm(t_ms=100, speed=35.0), buf, CFG)
        assert v.quick_checks.sudden_stop
        assert v.alert_level is AlertLevel.HIGH

    def test_sudden_stop_needs_two_samples(self):
        v = process_sample(calm(speed=0.0), StreamBuffer(), CFG)
        assert not v.quick_checks.sudden_stop

    def test_speed_change_at_threshold_is_not_sudden(self):
        buf = StreamBuffer()
        process_sample(calm(speed=60.0), buf, CFG)
        assert not process_sample(calm(t_ms=100, speed=40.0), buf, CFG).quick_checks.sudden_stop

    def test_phone_drop_with_default_thresholds_is_high(self):
        # anything above 10 g is also above the 8 g impact threshold
        v = process_sample(spike(10.5), StreamBuffer(), CFG)
        assert v.quick_checks.phone_dropped
        assert v.alert_level is AlertLevel.HIGH


class TestMediumAlert:
    CFG_MEDIUM = RealtimeConfig(high_impact_g=12.0, phone_drop_g=10.0)

    def _warm(self, n):
        buf = StreamBuffer()
        for i in range(n):
            process_sample(calm(t_ms=i * 100), buf, self.CFG_MEDIUM)
        return buf

    def test_medium_triggers_with_five_samples(self):
        buf = self._warm(4)
        v = process_sample(spike(10.5, t_ms=400), buf, self.CFG_MEDIUM)
        assert v.quick_checks.phone_dropped
        assert not v.quick_checks.high_impact
        assert v.alert_level is AlertLevel.MEDIUM
        assert v.buffer_size == 5
        assert v.should_trigger_full_analysis

    def test_medium_waits_for_warm_buffer(self):
        buf = self._warm(3)
        v = process_sample(spike(10.5, t_ms=300), buf, self.CFG_MEDIUM)
        assert v.alert_level is AlertLevel.MEDIUM
        assert v.buffer_size == 4
        assert not v.should_trigger_full_analysis


class TestValidation:
    def test_accepts_wire_payload(self):
        v = process_sample(to_wire(spike(9.0)), StreamBuffer(), CFG)
        assert v.alert_level is AlertLevel.HIGH

    def test_device_magnitude_recomputed(self):
        payload = {"accelerometer": {"x": 9.0, "y": 0, "z": 0, "magnitude": 0.0},
                   "gyroscope": {"x": 0, "y": 0, "z": 0}, "speed": 50.0, "timestamp": 0}
        v = process_sample(payload, StreamBuffer(), CFG)
        assert v.alert_level is AlertLevel.HIGH
        assert v.quick_checks.high_impact
        assert v.samples[-1].accel_magnitude == pytest.approx(9.0)

    def test_malformed_payload_raises(self):
        with pytest.raises(MalformedSampleError):
            process_sample({"accelerometer": {"x": 1.0}}, StreamBuffer(), CFG)


class TestRealtimeStreamAnalyzer:
    def test_sessions_do_not_share_buffers(self):
        analyzer = RealtimeStreamAnalyzer()
        # Interleaved devices at very different speeds: a shared buffer would
        # see a 50 km/h jump on every push
        for i in range(6):
            va = analyzer.push("car-a", calm(t_ms=i * 100, speed=60.0))
            vb = analyzer.push("car-b", calm(t_ms=i * 100, speed=10.0))
            assert va.alert_level is AlertLevel.LOW
            assert vb.alert_level is AlertLevel.LOW
        assert len(analyzer.session_samples("car-a")) == 6
        assert all(s.speed_kmh == 10.0 for s in analyzer.session_samples("car-b"))

    def test_end_session_discards_buffer(self):
        analyzer = RealtimeStreamAnalyzer()
        analyzer.push("car-a", calm())
        assert analyzer.active_sessions() == ["car-a"]
        assert analyzer.end_session("car-a")
        assert not analyzer.end_session("car-a")
        assert analyzer.session_samples("car-a") == ()
        assert len(analyzer) == 0

    def test_new_session_starts_empty(self):
        analyzer = RealtimeStreamAnalyzer()
        analyzer.push("car-a", calm(speed=80.0))
        analyzer.end_session("car-a")
        v = analyzer.push("car-a", calm(speed=0.0))
        assert v.buffer_size == 1
        assert not v.quick_checks.sudden_stop

    def test_analyze_session_runs_full_pipeline(self):
        analyzer = RealtimeStreamAnalyzer()
        triggered = None
        for s in make_frontal_collision():
            v = analyzer.push("car-a", s)
            if v.should_trigger_full_analysis and triggered is None:
                triggered = analyzer.analyze_session("car-a")
        assert triggered is not None
        assert triggered.detection_method is DetectionMethod.AUTOMATIC
        assert triggered.impact_force_g > 7.0

    def test_analyze_unknown_session_falls_back(self):
        assert RealtimeStreamAnalyzer().analyze_session("nobody").detection_method is DetectionMethod.FALLBACK

    def test_concurrent_sessions_keep_order(self):
        analyzer = RealtimeStreamAnalyzer(realtime_cfg=RealtimeConfig(buffer_size=50))
        errors = []

        def feed(session_id):
            try:
                for i in range(40):
                    analyzer.push(session_id, calm(t_ms=i))
            except Exception as e:  # surfaced below
                errors.append(e)

        threads = [threading.Thread(target=feed, args=(f"car-{k}",)) for k in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(analyzer) == 8
        for k in range(8):
            assert [s.timestamp_ms for s in analyzer.session_samples(f"car-{k}")] == list(range(40))

    def test_concurrent_pushes_to_one_session(self):
        analyzer = RealtimeStreamAnalyzer()
        threads = [
            threading.Thread(target=lambda: [analyzer.push("car-a", calm()) for _ in range(100)])
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(analyzer.session_samples("car-a")) == 10
