"""关键点指标提取模块：由 468 点人脸网格计算 EAR、MAR 和离散头部姿态"""

import math

import numpy as np

from models.data_models import (
    NUM_LANDMARKS,
    HeadPose,
    LandmarkSample,
    LandmarkShapeError,
    Metrics,
)

# 关键点索引常量（顺序：水平端点、上 1、上 2、水平端点、下 2、下 1）
LEFT_EYE_INDICES = [362, 385, 387, 263, 373, 380]
RIGHT_EYE_INDICES = [33, 160, 158, 133, 153, 144]

# 内唇三组垂直点对（中、左、右）与嘴角
MOUTH_VERTICAL_PAIRS = [(13, 14), (312, 311), (82, 87)]
MOUTH_CORNERS = (61, 291)

HEAD_POSE_INDICES = {
    "nose_tip": 1,
    "left_eye": 33,
    "right_eye": 263,
    "chin": 152,
}

# 头部姿态判定常量（归一化图像坐标）
LOOKING_AWAY_DEVIATION = 0.2
HEAD_TURNED_DEVIATION = 0.15
LOOKING_UP_MARGIN = 0.05
LOOKING_DOWN_MARGIN = 0.1


def validate_landmarks(points) -> np.ndarray:
    """
    校验关键点数组形状。

    Args:
        points: 可转换为 (468, 3) 浮点数组的序列

    Returns:
        float64 numpy 数组

    Raises:
        LandmarkShapeError: 数量、维度不符或包含非有限值
    """
    try:
        arr = np.asarray(points, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise LandmarkShapeError(f"landmarks are not numeric: {e}") from e

    if arr.shape != (NUM_LANDMARKS, 3):
        raise LandmarkShapeError(
            f"expected ({NUM_LANDMARKS}, 3) landmarks, got {arr.shape}"
        )
    if not np.all(np.isfinite(arr)):
        raise LandmarkShapeError("landmarks contain non-finite values")
    return arr


def validate_timestamp(timestamp) -> float:
    """
    校验样本时间戳。

    Raises:
        LandmarkShapeError: 非数值、布尔值或非有限值
    """
    if isinstance(timestamp, bool):
        raise LandmarkShapeError(f"timestamp must be a number, got {timestamp!r}")
    try:
        value = float(timestamp)
    except (TypeError, ValueError) as e:
        raise LandmarkShapeError(f"timestamp must be a number, got {timestamp!r}") from e
    if not math.isfinite(value):
        raise LandmarkShapeError(f"timestamp must be finite, got {timestamp!r}")
    return value


def make_sample(points, timestamp: float) -> LandmarkSample:
    """校验后构造 LandmarkSample，数组设为只读。"""
    arr = validate_landmarks(points).copy()
    arr.flags.writeable = False
    return LandmarkSample(points=arr, timestamp=validate_timestamp(timestamp))


def calculate_ear(points: np.ndarray, eye_indices) -> float:
    """
    计算单只眼睛的 EAR 值。

    公式: EAR = (|p1-p5| + |p2-p4|) / (2 * |p0-p3|)，三维欧氏距离

    Returns:
        EAR 值，分母为零时返回 0.0
    """
    p0, p1, p2, p3, p4, p5 = (points[i] for i in eye_indices)

    vertical_1 = math.dist(p1, p5)
    vertical_2 = math.dist(p2, p4)
    horizontal = math.dist(p0, p3)

    if horizontal == 0.0:
        return 0.0

    return (vertical_1 + vertical_2) / (2.0 * horizontal)


def calculate_mar(points: np.ndarray) -> float:
    """
    计算 MAR 值。

    公式: MAR = (v1 + v2 + v3) / (3 * h)

    Returns:
        MAR 值，分母为零时返回 0.0
    """
    left, right = MOUTH_CORNERS
    horizontal = math.dist(points[left], points[right])

    if horizontal == 0.0:
        return 0.0

    vertical = sum(math.dist(points[a], points[b]) for a, b in MOUTH_VERTICAL_PAIRS)
    return vertical / (3.0 * horizontal)


def classify_head_pose(points: np.ndarray) -> HeadPose:
    """根据鼻尖相对画面中心、眼睛中心和下巴的位置判定头部姿态。"""
    nose = points[HEAD_POSE_INDICES["nose_tip"]]
    left_eye = points[HEAD_POSE_INDICES["left_eye"]]
    right_eye = points[HEAD_POSE_INDICES["right_eye"]]
    chin = points[HEAD_POSE_INDICES["chin"]]

    horizontal_deviation = abs(nose[0] - 0.5)

    if horizontal_deviation > LOOKING_AWAY_DEVIATION:
        return HeadPose.LOOKING_AWAY
    if horizontal_deviation > HEAD_TURNED_DEVIATION:
        return HeadPose.HEAD_TURNED

    eye_center_y = (left_eye[1] + right_eye[1]) / 2.0

    if nose[1] < eye_center_y - LOOKING_UP_MARGIN:
        return HeadPose.LOOKING_UP
    if nose[1] > chin[1] - LOOKING_DOWN_MARGIN:
        return HeadPose.LOOKING_DOWN
    return HeadPose.CENTERED


def extract_metrics(sample: LandmarkSample) -> Metrics:
    """由单帧关键点计算全部指标。"""
    points = validate_landmarks(sample.points)

    ear_left = calculate_ear(points, LEFT_EYE_INDICES)
    ear_right = calculate_ear(points, RIGHT_EYE_INDICES)

    return Metrics(
        ear_left=ear_left,
        ear_right=ear_right,
        ear_avg=(ear_left + ear_right) / 2.0,
        mar=calculate_mar(points),
        head_pose=classify_head_pose(points),
    )
