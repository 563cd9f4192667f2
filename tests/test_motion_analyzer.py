"""KinematicEventDetector 单元测试"""

import pytest

from detectors.motion_analyzer import (
    KinematicEventDetector,
    acceleration_intensity,
    total_acceleration,
)
from models.data_models import MotionEventKind, MotionSample


def _sample(t, accel_x=0.0, gyro_z=0.0, accel_y=0.0, accel_z=9.8):
    return MotionSample(
        accel_x=accel_x, accel_y=accel_y, accel_z=accel_z,
        gyro_x=0.0, gyro_y=0.0, gyro_z=gyro_z, timestamp=t,
    )


class TestClassification:
    def test_quiet_sample_no_event(self):
        assert KinematicEventDetector().process(_sample(0.0, accel_x=2.0)).event is None

    def test_rapid_acceleration(self):
        event = KinematicEventDetector().process(_sample(0.0, accel_x=20.0)).event
        assert event.kind == MotionEventKind.RAPID_ACCELERATION
        assert event.cost == 5
        assert event.severity == "warning"

    def test_hard_braking(self):
        event = KinematicEventDetector().process(_sample(0.0, accel_x=-18.0)).event
        assert event.kind == MotionEventKind.HARD_BRAKING
        assert event.cost == 10
        assert event.severity == "danger"
        assert "18.0" in event.message

    def test_sharp_turn(self):
        event = KinematicEventDetector().process(_sample(0.0, gyro_z=-3.0)).event
        assert event.kind == MotionEventKind.SHARP_TURN
        assert event.cost == 5

    def test_first_match_wins(self):
        event = KinematicEventDetector().process(_sample(0.0, accel_x=16.0, gyro_z=3.0)).event
        assert event.kind == MotionEventKind.RAPID_ACCELERATION

    def test_boundaries_exclusive(self):
        detector = KinematicEventDetector()
        assert detector.process(_sample(0.0, accel_x=15.0)).event is None
        assert detector.process(_sample(0.0, accel_x=-15.0)).event is None
        assert detector.process(_sample(0.0, gyro_z=2.5)).event is None


class TestDebounce:
    def test_second_event_within_two_seconds_suppressed(self):
        """accel_x=20 两次间隔 1 秒：只记录一个事件"""
        detector = KinematicEventDetector()
        assert detector.process(_sample(0.0, accel_x=20.0)).event is not None
        assert detector.process(_sample(1.0, accel_x=20.0)).event is None
        assert len(detector.recent_events) == 1

    def test_debounce_shared_across_kinds(self):
        detector = KinematicEventDetector()
        detector.process(_sample(0.0, accel_x=20.0))
        assert detector.process(_sample(1.5, accel_x=-20.0)).event is None
        assert detector.process(_sample(1.9, gyro_z=3.0)).event is None

    def test_event_after_window(self):
        detector = KinematicEventDetector()
        detector.process(_sample(0.0, accel_x=20.0))
        assert detector.process(_sample(2.0, accel_x=-20.0)).event is not None

    def test_recent_events_bounded(self):
        detector = KinematicEventDetector()
        for i in range(8):
            detector.process(_sample(i * 3.0, accel_x=20.0))
        recent = detector.recent_events
        assert len(recent) == 5
        assert recent[0].timestamp == pytest.approx(9.0)
        assert recent[-1].timestamp == pytest.approx(21.0)

    def test_reset(self):
        detector = KinematicEventDetector()
        detector.process(_sample(0.0, accel_x=20.0))
        detector.reset()
        assert detector.recent_events == []
        assert detector.process(_sample(0.5, accel_x=20.0)).event is not None


class TestIntensity:
    def test_total_acceleration(self):
        assert total_acceleration(_sample(0.0, accel_x=3.0, accel_z=4.0)) == pytest.approx(5.0)

    @pytest.mark.parametrize("total, level", [(9.8, "safe"), (15.0, "safe"), (20.0, "warning"), (30.0, "danger")])
    def test_levels(self, total, level):
        assert acceleration_intensity(total) == level

    def test_result_carries_intensity(self):
        result = KinematicEventDetector().process(_sample(0.0, accel_x=20.0))
        assert result.intensity == "warning"
