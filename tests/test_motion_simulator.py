"""MotionSimulator 单元测试"""

import threading

from detectors.motion_analyzer import KinematicEventDetector
from sensors.motion_simulator import MotionSimulator


class TestMotionSimulator:
    def test_seeded_sequence_repeatable(self):
        a = MotionSimulator(seed=5)
        b = MotionSimulator(seed=5)
        for i in range(50):
            assert a.next_sample(i * 0.1) == b.next_sample(i * 0.1)

    def test_baseline_has_gravity(self):
        sample = MotionSimulator(seed=0).next_sample(0.0)
        assert 9.0 < sample.accel_z < 10.5
        assert sample.timestamp == 0.0

    def test_spikes_produce_events(self):
        simulator = MotionSimulator(seed=1)
        detector = KinematicEventDetector()
        events = 0
        for i in range(3000):
            if detector.process(simulator.next_sample(i * 0.1)).event is not None:
                events += 1
        assert events > 0

    def test_background_thread(self):
        simulator = MotionSimulator(seed=2, interval=0.01)
        received = []
        enough = threading.Event()

        def on_sample(sample):
            received.append(sample)
            if len(received) >= 3:
                enough.set()

        simulator.start(on_sample)
        try:
            assert enough.wait(2.0)
        finally:
            simulator.stop()
