"""安全分账本：会话内单调不增，下限为 0"""

import logging
import threading

logger = logging.getLogger(__name__)

INITIAL_SAFETY_SCORE = 100


class SafetyLedger:
    """按事件扣分并统计干预次数，两者分开记录"""

    def __init__(self):
        self._lock = threading.Lock()
        self.safety_score = INITIAL_SAFETY_SCORE
        self.intervention_count = 0

    def deduct(self, points: int, reason: str = "") -> int:
        """
        扣除安全分。

        Raises:
            ValueError: points 为负数
        """
        if points < 0:
            raise ValueError(f"safety cost must be non-negative, got {points}")
        with self._lock:
            self.safety_score = max(0, self.safety_score - points)
            score = self.safety_score
        logger.debug("Safety score -%d (%s) -> %d", points, reason, score)
        return score

    def record_intervention(self, reason: str = "") -> int:
        with self._lock:
            self.intervention_count += 1
            count = self.intervention_count
        logger.debug("Intervention #%d (%s)", count, reason)
        return count

    def reset(self):
        """新会话开始时重置"""
        with self._lock:
            self.safety_score = INITIAL_SAFETY_SCORE
            self.intervention_count = 0
