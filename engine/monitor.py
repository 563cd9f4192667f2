"""监控引擎：持有一次驾驶会话的全部状态，串联人脸与运动两条处理流水线"""

import logging
import threading
from typing import List, Optional

from models.data_models import (
    DrowsinessPhase,
    EngineConfig,
    FrameReport,
    Intervention,
    InterventionKind,
    LandmarkSample,
    MotionResult,
    MotionSample,
    MusicState,
    TripSession,
    TripSummary,
)
from detectors.eye_analyzer import MUSIC_ESCALATION_EPISODES, DrowsinessDetector
from detectors.head_pose_analyzer import DistractionDetector
from detectors.landmarks import extract_metrics
from detectors.motion_analyzer import KinematicEventDetector
from detectors.mouth_analyzer import YawnDetector
from evaluators.fatigue_evaluator import FatigueEvaluator
from evaluators.intervention_policy import InterventionPolicy
from evaluators.safety_ledger import SafetyLedger
from engine.alert_registry import AlertTagRegistry
from engine.config import merge_config
from engine.dispatchers import AlertLog, AudioDispatcher, RestStopDispatcher
from engine.scheduler import Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)

CONTINUOUS_ALERT_PERIOD_S = 0.8
RECOVERY_WINDOW_S = 30.0
SLEEP_SAMPLE_COST = 2
DISTRACTION_COST = 2
DEFAULT_LOCATION = (28.7041, 77.1025)

WAKE_UP_SPEECH = "Wake up! You are falling asleep while driving!"


class MonitoringEngine:
    """
    疲劳与分心推理引擎。

    人脸样本和运动样本可以来自不同线程；两条流水线共享安全分账本和告警标签，
    所有入口以及定时回调都在同一把可重入锁内执行。
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        audio: Optional[AudioDispatcher] = None,
        rest_stops: Optional[RestStopDispatcher] = None,
        alert_sink: Optional[AlertLog] = None,
        scheduler: Optional[Scheduler] = None,
        rng=None,
    ):
        self.config = config or EngineConfig()
        self.audio = audio or AudioDispatcher()
        self.rest_stops = rest_stops or RestStopDispatcher()
        self.alerts = alert_sink or AlertLog()
        self.scheduler = scheduler or ThreadingScheduler()

        self.registry = AlertTagRegistry()
        self.ledger = SafetyLedger()
        self.drowsiness = DrowsinessDetector()
        self.yawn = YawnDetector()
        self.distraction = DistractionDetector()
        self.motion = KinematicEventDetector()
        self.fatigue_evaluator = FatigueEvaluator()
        self.policy = InterventionPolicy(rng)

        self.music = MusicState()
        self.location = DEFAULT_LOCATION
        self.session: Optional[TripSession] = None
        self.last_report: Optional[FrameReport] = None

        self._lock = threading.RLock()
        self._next_session_id = 0
        self._alert_task = None
        self._recovery_task = None

    @property
    def is_monitoring(self) -> bool:
        return self.session is not None

    # ---- 会话控制 ----

    def start(self, now: Optional[float] = None) -> TripSession:
        """开始监控会话，事件计数、安全分和全部标签重置。"""
        with self._lock:
            if self.session is not None:
                return self.session

            now = self.scheduler.now() if now is None else now
            self._reset_state()
            self._next_session_id += 1
            self.session = TripSession(session_id=self._next_session_id, start_time=now)

            logger.info("Monitoring session %d started", self.session.session_id)
            self.alerts.emit("Full system monitoring started!", "info")
            return self.session

    def stop(self, now: Optional[float] = None) -> Optional[TripSummary]:
        """结束会话：同步取消所有定时任务，状态机回到初始状态，返回行程总结。"""
        with self._lock:
            if self.session is None:
                return None

            now = self.scheduler.now() if now is None else now
            self._cancel_tasks()
            self._pause_music()

            self._sync_session()
            session = self.session
            summary = TripSummary(
                duration_min=round(max(0.0, now - session.start_time) / 60.0, 1),
                safety_score=session.safety_score,
                intervention_count=session.intervention_count,
                episode_count=session.episode_count,
            )
            self.session = None

            self.drowsiness.reset()
            self.yawn.reset()
            self.distraction.reset()
            self.motion.reset()
            self.registry.clear()

            logger.info("Monitoring session %d stopped: %s", session.session_id, summary)
            self.alerts.emit("Monitoring stopped", "info")
            self.alerts.emit(
                f"Trip completed: {summary.duration_min} min, Safety Score: {summary.safety_score}, "
                f"Sleep Episodes: {summary.episode_count}",
                "info",
            )
            return summary

    def update_config(self, data: dict) -> EngineConfig:
        """动态更新配置；进行中的计时器不受影响，新值从下一帧起生效。"""
        with self._lock:
            self.config = merge_config(self.config, data)
            logger.info("Config updated: %s", self.config)
            return self.config

    # ---- 人脸流水线 ----

    def process_face(self, sample: Optional[LandmarkSample], now: Optional[float] = None) -> Optional[FrameReport]:
        """
        处理一帧人脸关键点。

        Args:
            sample: LandmarkSample；为 None 表示本帧未检测到人脸
            now: 无人脸时使用的时间戳，缺省取调度器时钟

        Returns:
            FrameReport；未在监控时返回 None

        Raises:
            LandmarkShapeError: 关键点数组形状不符
        """
        with self._lock:
            if self.session is None:
                return None

            if sample is None:
                now = self.scheduler.now() if now is None else now
                return self._handle_no_face(now)

            now = sample.timestamp
            metrics = extract_metrics(sample)
            config = self.config
            interventions: List[Intervention] = []

            eye_result = self.drowsiness.update(
                metrics.ear_avg, now, config.ear_threshold, config.wait_time_s
            )
            if eye_result.entered_sleep:
                interventions.extend(self._on_sleep_entered(eye_result.episode_count, eye_result.continuous_alert_active))
            if eye_result.woke_up:
                self._on_woke_up(now)

            status, level = "Driver Alert", "safe"
            if eye_result.phase == DrowsinessPhase.SLEEPING:
                self.ledger.deduct(SLEEP_SAMPLE_COST, "sleeping")
                self.ledger.record_intervention("sleeping")
                status, level = "SLEEPING - WAKE UP!", "danger"
            elif eye_result.phase == DrowsinessPhase.EYES_CLOSING:
                status, level = "Eyes closing...", "warning"

            pose_result = self.distraction.update(metrics.head_pose, now, self.registry)
            if pose_result.is_distracted:
                if pose_result.beep:
                    self._tone(800, 200, 1)
                if pose_result.tag_fired:
                    self.ledger.deduct(DISTRACTION_COST, "distraction")
                    self.alerts.emit("Attention! You are distracted - Look at the road!", "warning")
                if level != "danger":
                    status, level = f"Distraction: {metrics.head_pose.value}", "warning"

            mouth_result = self.yawn.update(metrics.mar, now, config.mar_threshold, self.registry)
            if mouth_result.yawn_event:
                self.alerts.emit("Yawning detected! Consider a break.", "warning")
                self._tone(600, 250, 2)
                self.ledger.record_intervention("yawn")
                if level != "danger":
                    status, level = "Yawning detected", "warning"

            fatigue = self.fatigue_evaluator.evaluate(eye_result, mouth_result, pose_result)

            actions = self.policy.evaluate(fatigue.score, config, self.music, self.registry, now)
            self._apply(actions)
            interventions.extend(actions)

            self._sync_session()
            self.last_report = FrameReport(
                face_detected=True,
                metrics=metrics,
                eye_result=eye_result,
                mouth_result=mouth_result,
                pose_result=pose_result,
                fatigue=fatigue,
                status=status,
                level=level,
                interventions=interventions,
            )
            return self.last_report

    def _handle_no_face(self, now: float) -> FrameReport:
        """无人脸不是错误：停止连续警报、清空计时器，不计为醒来。"""
        eye_result = self.drowsiness.face_lost()
        self._stop_continuous_alert()
        self.yawn.reset()

        self.last_report = FrameReport(
            face_detected=False,
            metrics=None,
            eye_result=eye_result,
            mouth_result=None,
            pose_result=None,
            fatigue=self.fatigue_evaluator.idle(),
            status="No face detected",
            level="warning",
        )
        return self.last_report

    def _on_sleep_entered(self, episode_count: int, continuous_alert: bool) -> List[Intervention]:
        if self._recovery_task is not None:
            self._recovery_task.cancel()
            self._recovery_task = None

        if continuous_alert:
            self._start_continuous_alert()

        self.alerts.emit(f"SLEEPING DETECTED! Wake up immediately! (Episode {episode_count})", "danger")
        self._speak(WAKE_UP_SPEECH)

        actions = self.policy.on_sleep_entered(episode_count, self.music)
        self._apply(actions)
        return actions

    def _on_woke_up(self, now: float):
        self._stop_continuous_alert()
        self.alerts.emit("Driver awake again - Good!", "info")

        if self._recovery_task is not None:
            self._recovery_task.cancel()
        session_id = self.session.session_id
        self._recovery_task = self.scheduler.call_later(
            RECOVERY_WINDOW_S,
            lambda: self._recovery_window_expired(session_id),
            name="recovery",
        )
        logger.debug("Recovery window started at %.2f", now)

    def _recovery_window_expired(self, session_id: int):
        with self._lock:
            if not self._session_valid(session_id):
                return
            self._recovery_task = None
            if self.drowsiness.state.is_currently_drowsy:
                return

            self.drowsiness.reset_episodes()
            self._sync_session()
            logger.info("Driver stayed alert for %.0fs, episode count reset", RECOVERY_WINDOW_S)
            if self.music.playing:
                self._pause_music()
                self.alerts.emit("Music stopped - Driver is alert", "info")

    # ---- 连续警报 ----

    def _start_continuous_alert(self):
        if self._alert_task is not None:
            return
        session_id = self.session.session_id
        self._alert_task = self.scheduler.call_every(
            CONTINUOUS_ALERT_PERIOD_S,
            lambda: self._continuous_alert_tick(session_id),
            name="continuous_alert",
        )
        logger.info("Continuous alert started")

    def _continuous_alert_tick(self, session_id: int):
        with self._lock:
            state = self.drowsiness.state
            if (not self._session_valid(session_id)
                    or not state.is_currently_drowsy
                    or not state.continuous_alert_active):
                self._stop_continuous_alert()
                return
            self._tone(1200, 300, 1)

    def _stop_continuous_alert(self):
        self.drowsiness.state.continuous_alert_active = False
        if self._alert_task is None:
            return
        self._alert_task.cancel()
        self._alert_task = None
        logger.info("Continuous alert stopped")

    @property
    def continuous_alert_running(self) -> bool:
        return self._alert_task is not None

    # ---- 运动流水线 ----

    def process_motion(self, sample: MotionSample) -> Optional[MotionResult]:
        """处理一个运动样本；事件扣分并写入告警日志。"""
        with self._lock:
            if self.session is None:
                return None

            result = self.motion.process(sample)
            event = result.event
            if event is not None:
                self.ledger.deduct(event.cost, event.kind.value)
                self.ledger.record_intervention(event.kind.value)
                self.alerts.emit(event.message, event.severity)
                self._sync_session()
            return result

    # ---- 音乐、语音与休息点 ----

    def play_music(self, force: bool = False, user_initiated: bool = True) -> bool:
        """播放音乐；非强制且非用户发起时，只有达到升级事件数才允许。"""
        with self._lock:
            if (not force and not user_initiated
                    and self.drowsiness.state.episode_count < MUSIC_ESCALATION_EPISODES):
                logger.debug("Music auto-start prevented")
                return False
            self._start_music()
            return True

    def pause_music(self):
        with self._lock:
            self._pause_music()

    def speak_test_message(self) -> str:
        message = self.policy.pick_message("motivational")
        self._speak(message)
        return message

    def set_location(self, lat: float, lng: float):
        with self._lock:
            self.location = (lat, lng)

    def find_rest_stops(self):
        """请求外部查询附近休息点，返回值原样交给调用方。"""
        return self.rest_stops.find_nearby_stops(self.location)

    def _apply(self, actions: List[Intervention]):
        for action in actions:
            kind = action.kind
            if kind == InterventionKind.STOP_CONTINUOUS_ALERT:
                self._stop_continuous_alert()
            elif kind == InterventionKind.ALERT:
                self.alerts.emit(action.message, action.severity)
            elif kind == InterventionKind.FORCE_MUSIC:
                self._start_music()
            elif kind == InterventionKind.MUSIC_MODE:
                self.music.mode = action.mode
                if action.volume is not None:
                    self.music.volume = action.volume
                if self.music.playing:
                    self.audio.set_music_mode(self.music.mode, self.music.volume)
            elif kind == InterventionKind.PAUSE_MUSIC:
                self._pause_music()
            elif kind == InterventionKind.SPEAK:
                self._speak(action.message)
            elif kind == InterventionKind.REST_STOP:
                self.find_rest_stops()

    def _start_music(self):
        self.music.playing = True
        self.audio.start_music()

    def _pause_music(self):
        if not self.music.playing:
            return
        self.music.playing = False
        self.audio.pause_music()

    def _speak(self, text: str):
        if self.config.psych_messages:
            self.audio.speak(text)

    def _tone(self, frequency: int, duration_ms: int, repetitions: int):
        if self.config.sound_enabled:
            self.audio.play_tone(frequency, duration_ms, repetitions)

    # ---- 状态 ----

    def get_status(self) -> dict:
        """当前状态快照，供界面/接口读取。"""
        with self._lock:
            now = self.scheduler.now()
            report = self.last_report
            metrics = report.metrics if report is not None else None
            state = self.drowsiness.state
            return {
                "monitoring": self.is_monitoring,
                "face_detected": report.face_detected if report is not None else False,
                "ear": round(metrics.ear_avg, 4) if metrics else 0.0,
                "mar": round(metrics.mar, 4) if metrics else 0.0,
                "head_pose": metrics.head_pose.value if metrics else None,
                "phase": self.drowsiness.phase.value,
                "status": report.status if report is not None else "Ready",
                "level": report.level if report is not None else "safe",
                "fatigue": round(report.fatigue.score, 1) if report is not None else 0.0,
                "fatigue_level": report.fatigue.level if report is not None else "normal",
                "episode_count": state.episode_count,
                "continuous_alert": state.continuous_alert_active,
                "safety_score": self.ledger.safety_score,
                "intervention_count": self.ledger.intervention_count,
                "music": {
                    "playing": self.music.playing,
                    "mode": self.music.mode,
                    "volume": self.music.volume,
                },
                "active_tags": self.registry.active_tags(now),
                "motion_events": [e.message for e in self.motion.recent_events],
            }

    # ---- 内部 ----

    def _session_valid(self, session_id: int) -> bool:
        return self.session is not None and self.session.session_id == session_id

    def _sync_session(self):
        if self.session is None:
            return
        self.session.safety_score = self.ledger.safety_score
        self.session.intervention_count = self.ledger.intervention_count
        self.session.episode_count = self.drowsiness.state.episode_count

    def _cancel_tasks(self):
        self._stop_continuous_alert()
        if self._recovery_task is not None:
            self._recovery_task.cancel()
            self._recovery_task = None

    def _reset_state(self):
        self._cancel_tasks()
        self.drowsiness.reset()
        self.yawn.reset()
        self.distraction.reset()
        self.motion.reset()
        self.registry.clear()
        self.ledger.reset()
        self.music = MusicState()
        self.last_report = None
