"""模拟运动传感器：无真实加速度计/陀螺仪时生成演示数据"""

import math
import threading
import time
from typing import Callable, Optional

import numpy as np

from models.data_models import MotionSample

SAMPLE_INTERVAL_S = 0.1
ACCEL_SPIKE = 18.0
ACCEL_SPIKE_PROB = 0.02
GYRO_SPIKE = 3.0
GYRO_SPIKE_PROB = 0.01


class MotionSimulator:
    """正弦基线 + 偶发尖峰，每 0.1 秒一个样本"""

    def __init__(self, seed: Optional[int] = None, interval: float = SAMPLE_INTERVAL_S):
        self._rng = np.random.default_rng(seed)
        self.interval = interval
        self._t = 0.0
        self._thread = None
        self._running = False

    def next_sample(self, timestamp: float) -> MotionSample:
        """生成下一个样本"""
        self._t += 0.1
        t = self._t
        accel_spike = ACCEL_SPIKE if self._rng.random() < ACCEL_SPIKE_PROB else 0.0
        gyro_spike = GYRO_SPIKE if self._rng.random() < GYRO_SPIKE_PROB else 0.0

        return MotionSample(
            accel_x=math.sin(t * 0.5) * 2 + accel_spike,
            accel_y=math.sin(t * 0.3) * 1.5,
            accel_z=9.8 + math.sin(t * 0.2) * 0.5,
            gyro_x=math.sin(t * 0.4) * 0.3,
            gyro_y=math.sin(t * 0.6) * 0.2,
            gyro_z=math.cos(t * 0.5) * 0.4 + gyro_spike,
            timestamp=timestamp,
        )

    def start(self, callback: Callable[[MotionSample], None]):
        """在后台线程中按固定间隔推送样本"""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._loop, args=(callback,), daemon=True)
        self._thread.start()

    def stop(self):
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

    def _loop(self, callback):
        while self._running:
            callback(self.next_sample(time.monotonic()))
            time.sleep(self.interval)
