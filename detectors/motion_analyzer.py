"""车辆运动分析模块：由加速度计/陀螺仪样本识别急加速、急刹车和急转弯"""

import logging
import math
from collections import deque
from typing import List

from models.data_models import MotionEvent, MotionEventKind, MotionResult, MotionSample

logger = logging.getLogger(__name__)

# 所有事件类型共享的去抖窗口（秒）
DEBOUNCE_S = 2.0
MAX_RECENT_EVENTS = 5

ACCEL_THRESHOLD = 15.0   # m/s²
GYRO_Z_THRESHOLD = 2.5   # rad/s

EVENT_COSTS = {
    MotionEventKind.RAPID_ACCELERATION: 5,
    MotionEventKind.HARD_BRAKING: 10,
    MotionEventKind.SHARP_TURN: 5,
}


def total_acceleration(sample: MotionSample) -> float:
    """三轴加速度合成幅值"""
    return math.sqrt(sample.accel_x ** 2 + sample.accel_y ** 2 + sample.accel_z ** 2)


def acceleration_intensity(total_accel: float) -> str:
    """合成加速度等级: safe / warning / danger"""
    if total_accel > 25.0:
        return "danger"
    if total_accel > 15.0:
        return "warning"
    return "safe"


class KinematicEventDetector:
    """阈值分类 + 全局去抖，保留最近 5 个事件用于显示"""

    def __init__(self):
        self._recent = deque(maxlen=MAX_RECENT_EVENTS)

    @property
    def recent_events(self) -> List[MotionEvent]:
        return list(self._recent)

    def process(self, sample: MotionSample) -> MotionResult:
        """
        处理一个运动样本。

        Args:
            sample: MotionSample，timestamp 单位为秒

        Returns:
            MotionResult；未触发或处于去抖窗口内时 event 为 None
        """
        total = total_acceleration(sample)
        result = MotionResult(total_accel=total, intensity=acceleration_intensity(total))

        now = sample.timestamp
        if self._recent and now - self._recent[-1].timestamp < DEBOUNCE_S:
            return result

        event = self._classify(sample)
        if event is not None:
            self._recent.append(event)
            logger.info("Motion event: %s", event.message)
            result.event = event
        return result

    @staticmethod
    def _classify(sample: MotionSample):
        """按顺序匹配，首个命中的规则生效"""
        if sample.accel_x > ACCEL_THRESHOLD:
            kind = MotionEventKind.RAPID_ACCELERATION
            message = f"Rapid Acceleration ({sample.accel_x:.1f} m/s²)"
            severity = "warning"
        elif sample.accel_x < -ACCEL_THRESHOLD:
            kind = MotionEventKind.HARD_BRAKING
            message = f"Hard Braking ({abs(sample.accel_x):.1f} m/s²)"
            severity = "danger"
        elif abs(sample.gyro_z) > GYRO_Z_THRESHOLD:
            kind = MotionEventKind.SHARP_TURN
            message = f"Sharp Turn ({sample.gyro_z:.2f} rad/s)"
            severity = "warning"
        else:
            return None

        return MotionEvent(
            kind=kind,
            message=message,
            severity=severity,
            cost=EVENT_COSTS[kind],
            timestamp=sample.timestamp,
        )

    def reset(self):
        self._recent.clear()
