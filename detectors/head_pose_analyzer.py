"""头部姿态分析模块：头部偏离正前方时触发分心提醒"""

from models.data_models import HeadPose, PoseResult
from engine.alert_registry import TAG_TTLS, AlertTagRegistry

# 单次蜂鸣冷却（秒）
BEEP_COOLDOWN_S = 3.0
DISTRACTION_CONTRIBUTION = 15.0


class DistractionDetector:
    """
    两套独立冷却同时生效：
    - 蜂鸣使用上次触发时间戳做 3 秒冷却；
    - 可见告警和安全分扣除由 "headpose" 标签门控，每次标签激活只扣一次。
    """

    TAG = "headpose"

    def __init__(self):
        self._last_beep_time = float("-inf")

    def update(self, head_pose: HeadPose, now: float, registry: AlertTagRegistry) -> PoseResult:
        if head_pose == HeadPose.CENTERED:
            return PoseResult(head_pose=head_pose, is_distracted=False, fatigue_contribution=0.0)

        beep = now - self._last_beep_time >= BEEP_COOLDOWN_S
        if beep:
            self._last_beep_time = now

        tag_fired = registry.activate(self.TAG, TAG_TTLS[self.TAG], now)

        return PoseResult(
            head_pose=head_pose,
            is_distracted=True,
            fatigue_contribution=DISTRACTION_CONTRIBUTION,
            beep=beep,
            tag_fired=tag_fired,
        )

    def reset(self):
        """重置蜂鸣冷却"""
        self._last_beep_time = float("-inf")
