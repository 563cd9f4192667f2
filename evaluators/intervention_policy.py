"""干预升级策略：依据疲劳分数和睡眠事件历史选择音乐模式、心理提示语和休息点建议"""

import logging
import random
from typing import List, Optional

from models.data_models import EngineConfig, Intervention, InterventionKind, MusicState
from engine.alert_registry import TAG_TTLS, AlertTagRegistry
from detectors.eye_analyzer import MUSIC_ESCALATION_EPISODES

logger = logging.getLogger(__name__)

# 心理提示语
MESSAGES = {
    "family": [
        "Dad, we're waiting for you at home. Drive safe!",
        "Your family loves you. Please drive carefully.",
        "Kids miss you! Come home safely.",
        "We're proud of you. Stay alert and focused.",
    ],
    "motivational": [
        "You're doing great! Just a little bit further.",
        "Stay focused - you've got this!",
        "Almost there! Keep your concentration high.",
        "Every safe mile counts. You're a pro!",
    ],
    "warning": [
        "Please take a break. Your safety matters most.",
        "Rest stop ahead - consider taking a short break.",
        "Fatigue detected. Pull over when safe.",
        "Your reaction time is decreasing. Time to rest.",
    ],
    "safety": [
        "15 drivers achieved perfect safety scores today. You're on track!",
        "Your safety record is excellent. Keep it up!",
        "Safe driving saves lives. You're making a difference.",
        "Top drivers take breaks. Be like them.",
    ],
}

MUSIC_FORCED_ALERT = "Starting energetic music - You've been drowsy 3 times!"
MUSIC_FORCED_SPEECH = (
    "You have shown drowsiness multiple times. "
    "Playing energetic music to help you stay alert."
)
REST_STOP_ALERT = "Critical fatigue! Finding nearby rest stops..."
REST_STOP_SPEECH = "Your fatigue level is critical. Please find a safe place to rest immediately."

PSYCH_MESSAGE_FATIGUE = 70.0
REST_STOP_FATIGUE = 80.0
ENERGETIC_VOLUME = 0.8


def music_tier(fatigue: float) -> str:
    """疲劳分数对应的音乐模式"""
    if fatigue < 30:
        return "normal"
    if fatigue < 60:
        return "upbeat"
    if fatigue < 80:
        return "energetic"
    return "critical"


def message_category(fatigue: float) -> str:
    """(70,75] warning，(75,85] safety，>85 family"""
    if fatigue > 85:
        return "family"
    if fatigue > 75:
        return "safety"
    return "warning"


class InterventionPolicy:
    """
    每次调用只根据传入的状态给出干预动作，不保留自身状态；
    重复抑制全部依赖 AlertTagRegistry 和音乐播放标志。
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def pick_message(self, category: str) -> str:
        return self._rng.choice(MESSAGES[category])

    def on_sleep_entered(self, episode_count: int, music: MusicState) -> List[Intervention]:
        """进入睡眠状态时检查是否达到音乐升级条件。"""
        if episode_count < MUSIC_ESCALATION_EPISODES or music.playing:
            return []

        logger.info("Episode count %d, forcing music", episode_count)
        return [
            Intervention(InterventionKind.STOP_CONTINUOUS_ALERT),
            Intervention(InterventionKind.ALERT, message=MUSIC_FORCED_ALERT, severity="danger"),
            Intervention(InterventionKind.FORCE_MUSIC),
            Intervention(InterventionKind.SPEAK, message=MUSIC_FORCED_SPEECH),
        ]

    def evaluate(
        self,
        fatigue: float,
        config: EngineConfig,
        music: MusicState,
        registry: AlertTagRegistry,
        now: float,
    ) -> List[Intervention]:
        """
        按疲劳分数给出本帧的干预动作。

        Args:
            fatigue: 当前帧疲劳分数
            config: 当前配置（auto_music 控制音乐模式调整）
            music: 当前音乐状态
            registry: 告警标签注册表，心理提示语和休息点分别由各自标签限频
            now: 当前时间戳（秒）

        Returns:
            干预动作列表，按执行顺序排列
        """
        actions: List[Intervention] = []

        if config.auto_music:
            actions.extend(self._adjust_music(fatigue, music))

        if fatigue > PSYCH_MESSAGE_FATIGUE and registry.activate(
            "psych_message", TAG_TTLS["psych_message"], now
        ):
            category = message_category(fatigue)
            actions.append(Intervention(
                InterventionKind.SPEAK,
                message=self.pick_message(category),
                category=category,
            ))

        if fatigue > REST_STOP_FATIGUE and registry.activate(
            "rest_stop", TAG_TTLS["rest_stop"], now
        ):
            actions.append(Intervention(InterventionKind.ALERT, message=REST_STOP_ALERT, severity="danger"))
            actions.append(Intervention(InterventionKind.REST_STOP))
            actions.append(Intervention(InterventionKind.SPEAK, message=REST_STOP_SPEECH))

        return actions

    @staticmethod
    def _adjust_music(fatigue: float, music: MusicState) -> List[Intervention]:
        """只调整正在播放的音乐，从不自动开始播放"""
        tier = music_tier(fatigue)

        if tier == "normal":
            if music.mode != "normal":
                return [Intervention(InterventionKind.MUSIC_MODE, mode="normal")]
            return []

        if tier == "critical":
            actions = []
            if music.playing:
                actions.append(Intervention(
                    InterventionKind.PAUSE_MUSIC,
                    message="Music paused - High fatigue!",
                ))
            if music.mode != "critical":
                actions.append(Intervention(InterventionKind.MUSIC_MODE, mode="critical"))
            return actions

        if not music.playing or music.mode == tier:
            return []

        if tier == "energetic":
            return [Intervention(InterventionKind.MUSIC_MODE, mode="energetic", volume=ENERGETIC_VOLUME)]
        return [Intervention(InterventionKind.MUSIC_MODE, mode="upbeat")]
