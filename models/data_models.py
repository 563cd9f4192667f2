"""核心数据模型定义"""

from collections import namedtuple
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np


NUM_LANDMARKS = 468


class LandmarkShapeError(ValueError):
    """关键点输入形状错误（数量或维度不符）"""


class ConfigError(ValueError):
    """配置值无法使用"""


class HeadPose(Enum):
    """离散头部姿态"""
    CENTERED = "Centered"
    HEAD_TURNED = "Head Turned"
    LOOKING_AWAY = "Looking Away"
    LOOKING_UP = "Looking Up"
    LOOKING_DOWN = "Looking Down"


class DrowsinessPhase(Enum):
    """闭眼状态机阶段"""
    ALERT = "alert"
    EYES_CLOSING = "eyes_closing"
    SLEEPING = "sleeping"


class MotionEventKind(Enum):
    """车辆运动事件类型"""
    RAPID_ACCELERATION = "rapid_acceleration"
    HARD_BRAKING = "hard_braking"
    SHARP_TURN = "sharp_turn"


class InterventionKind(Enum):
    """干预动作类型"""
    STOP_CONTINUOUS_ALERT = "stop_continuous_alert"
    FORCE_MUSIC = "force_music"
    MUSIC_MODE = "music_mode"
    PAUSE_MUSIC = "pause_music"
    SPEAK = "speak"
    REST_STOP = "rest_stop"
    ALERT = "alert"


@dataclass(frozen=True)
class LandmarkSample:
    """单帧人脸关键点（468 个归一化 3D 点）"""
    points: np.ndarray
    timestamp: float


@dataclass(frozen=True)
class Metrics:
    """从关键点计算出的单帧指标"""
    ear_left: float
    ear_right: float
    ear_avg: float
    mar: float
    head_pose: HeadPose


@dataclass
class EngineConfig:
    """阈值与开关配置，每帧读取"""
    ear_threshold: float = 0.25
    mar_threshold: float = 0.6
    wait_time_s: float = 3.0
    sound_enabled: bool = True
    auto_music: bool = True
    psych_messages: bool = True


@dataclass
class DrowsinessState:
    """闭眼检测器状态"""
    eyes_closed_since: Optional[float] = None
    is_currently_drowsy: bool = False
    episode_count: int = 0
    last_episode_time: float = float("-inf")
    continuous_alert_active: bool = False


@dataclass
class YawnState:
    """哈欠检测器状态"""
    mouth_open_since: Optional[float] = None
    yawn_tag_active: bool = False


@dataclass
class EyeResult:
    """眼睛分析结果"""
    ear: float
    phase: DrowsinessPhase
    closed_duration: float
    fatigue_contribution: float
    episode_count: int
    continuous_alert_active: bool
    entered_sleep: bool = False
    episode_counted: bool = False
    woke_up: bool = False


@dataclass
class MouthResult:
    """嘴巴分析结果"""
    mar: float
    is_open: bool
    open_duration: float
    fatigue_contribution: float
    yawn_event: bool = False


@dataclass
class PoseResult:
    """头部姿态分析结果"""
    head_pose: HeadPose
    is_distracted: bool
    fatigue_contribution: float
    beep: bool = False
    tag_fired: bool = False


MotionSample = namedtuple(
    "MotionSample",
    ["accel_x", "accel_y", "accel_z", "gyro_x", "gyro_y", "gyro_z", "timestamp"],
)


@dataclass(frozen=True)
class MotionEvent:
    """一次被记录的运动事件"""
    kind: MotionEventKind
    message: str
    severity: str
    cost: int
    timestamp: float


@dataclass
class MotionResult:
    """运动样本分析结果"""
    total_accel: float
    intensity: str
    event: Optional[MotionEvent] = None


@dataclass
class FatigueSnapshot:
    """单帧疲劳分数快照"""
    score: float
    level: str
    reasons: List[str]


@dataclass(frozen=True)
class Intervention:
    """升级策略输出的一个干预动作"""
    kind: InterventionKind
    message: str = ""
    severity: str = "warning"
    mode: str = ""
    volume: Optional[float] = None
    category: str = ""


@dataclass
class MusicState:
    """音乐播放状态"""
    playing: bool = False
    mode: str = "normal"
    volume: float = 0.5


@dataclass
class FrameReport:
    """单帧处理结果汇总"""
    face_detected: bool
    metrics: Optional[Metrics]
    eye_result: Optional[EyeResult]
    mouth_result: Optional[MouthResult]
    pose_result: Optional[PoseResult]
    fatigue: FatigueSnapshot
    status: str
    level: str
    interventions: List[Intervention] = field(default_factory=list)


@dataclass
class TripSession:
    """一次监控会话"""
    session_id: int
    start_time: float
    safety_score: int = 100
    intervention_count: int = 0
    episode_count: int = 0


@dataclass(frozen=True)
class TripSummary:
    """会话结束时的行程总结"""
    duration_min: float
    safety_score: int
    intervention_count: int
    episode_count: int


@dataclass(frozen=True)
class RestStop:
    """休息点"""
    name: str
    kind: str
    lat: float
    lng: float
    distance_km: float
