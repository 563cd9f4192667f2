"""眼睛状态分析模块：闭眼时长门控的困倦状态机，负责睡眠事件计数"""

import logging

from models.data_models import DrowsinessPhase, DrowsinessState, EyeResult

logger = logging.getLogger(__name__)

# 两次计数的睡眠事件之间的最小间隔（秒）
MIN_EPISODE_GAP_S = 4.0
# 达到该事件数后改由音乐干预，不再连续蜂鸣
MUSIC_ESCALATION_EPISODES = 3
# 闭眼对疲劳分数的最大贡献
MAX_DROWSY_CONTRIBUTION = 40.0


class DrowsinessDetector:
    """ALERT -> EYES_CLOSING -> SLEEPING -> ALERT 状态机，维护睡眠事件计数与连续警报标志"""

    def __init__(self):
        self.state = DrowsinessState()

    @property
    def phase(self) -> DrowsinessPhase:
        if self.state.is_currently_drowsy:
            return DrowsinessPhase.SLEEPING
        if self.state.eyes_closed_since is not None:
            return DrowsinessPhase.EYES_CLOSING
        return DrowsinessPhase.ALERT

    def update(self, ear_avg: float, now: float, ear_threshold: float, wait_time_s: float) -> EyeResult:
        """
        处理一帧 EAR 值。

        Args:
            ear_avg: 双眼平均 EAR
            now: 当前时间戳（秒）
            ear_threshold: 闭眼阈值（每帧读取，可在会话中修改）
            wait_time_s: 判定为睡眠所需的持续闭眼时长

        Returns:
            EyeResult，包含阶段、闭眼时长、疲劳贡献和本帧的状态跃迁标志
        """
        state = self.state
        entered_sleep = False
        episode_counted = False
        woke_up = False

        if ear_avg < ear_threshold:
            if state.eyes_closed_since is None:
                state.eyes_closed_since = now

            closed_duration = max(0.0, now - state.eyes_closed_since)
            contribution = self._contribution(closed_duration, wait_time_s)

            if closed_duration >= wait_time_s and not state.is_currently_drowsy:
                state.is_currently_drowsy = True
                entered_sleep = True

                if now - state.last_episode_time > MIN_EPISODE_GAP_S:
                    state.episode_count += 1
                    state.last_episode_time = now
                    episode_counted = True
                    logger.info("Sleeping detected, episode %d", state.episode_count)
                else:
                    logger.debug("Sleeping again within %.1fs, episode not counted", MIN_EPISODE_GAP_S)

                state.continuous_alert_active = state.episode_count < MUSIC_ESCALATION_EPISODES
        else:
            if state.is_currently_drowsy:
                state.is_currently_drowsy = False
                state.continuous_alert_active = False
                woke_up = True
                logger.info("Driver awake again")
            state.eyes_closed_since = None
            closed_duration = 0.0
            contribution = 0.0

        return EyeResult(
            ear=ear_avg,
            phase=self.phase,
            closed_duration=closed_duration,
            fatigue_contribution=contribution,
            episode_count=state.episode_count,
            continuous_alert_active=state.continuous_alert_active,
            entered_sleep=entered_sleep,
            episode_counted=episode_counted,
            woke_up=woke_up,
        )

    def face_lost(self) -> EyeResult:
        """未检测到人脸：回到 ALERT 等价状态，不计为醒来事件。"""
        state = self.state
        state.is_currently_drowsy = False
        state.continuous_alert_active = False
        state.eyes_closed_since = None

        return EyeResult(
            ear=0.0,
            phase=DrowsinessPhase.ALERT,
            closed_duration=0.0,
            fatigue_contribution=0.0,
            episode_count=state.episode_count,
            continuous_alert_active=False,
        )

    def reset_episodes(self):
        """恢复窗口到期后清零事件计数"""
        self.state.episode_count = 0

    def reset(self):
        """重置全部状态"""
        self.state = DrowsinessState()

    @staticmethod
    def _contribution(closed_duration: float, wait_time_s: float) -> float:
        if wait_time_s <= 0.0:
            return MAX_DROWSY_CONTRIBUTION
        return min(closed_duration / wait_time_s * MAX_DROWSY_CONTRIBUTION, MAX_DROWSY_CONTRIBUTION)
