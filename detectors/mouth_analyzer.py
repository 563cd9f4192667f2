"""嘴巴状态分析模块，负责 MAR 持续时长门控的哈欠检测"""

from models.data_models import MouthResult, YawnState
from engine.alert_registry import TAG_TTLS, AlertTagRegistry

# 张嘴持续该时长后判定为哈欠（秒）
YAWN_MIN_DURATION_S = 1.0
YAWN_CONTRIBUTION = 20.0


class YawnDetector:
    """维护张嘴计时器，通过 "yawn" 标签保证一次哈欠只触发一次事件"""

    TAG = "yawn"

    def __init__(self):
        self.state = YawnState()

    def update(self, mar: float, now: float, mar_threshold: float, registry: AlertTagRegistry) -> MouthResult:
        """
        分析一帧 MAR 值。

        Args:
            mar: 嘴部纵横比
            now: 当前时间戳（秒）
            mar_threshold: 张嘴阈值
            registry: 告警标签注册表

        Returns:
            MouthResult(mar, is_open, open_duration, fatigue_contribution, yawn_event)
        """
        state = self.state

        if mar <= mar_threshold:
            state.mouth_open_since = None
            state.yawn_tag_active = registry.is_active(self.TAG, now)
            return MouthResult(mar=mar, is_open=False, open_duration=0.0, fatigue_contribution=0.0)

        if state.mouth_open_since is None:
            state.mouth_open_since = now

        open_duration = max(0.0, now - state.mouth_open_since)
        yawn_event = False

        if open_duration >= YAWN_MIN_DURATION_S:
            yawn_event = registry.activate(self.TAG, TAG_TTLS[self.TAG], now)

        state.yawn_tag_active = registry.is_active(self.TAG, now)

        return MouthResult(
            mar=mar,
            is_open=True,
            open_duration=open_duration,
            fatigue_contribution=YAWN_CONTRIBUTION,
            yawn_event=yawn_event,
        )

    def reset(self):
        """重置计时器"""
        self.state = YawnState()
