"""人脸关键点检测模块，基于 MediaPipe FaceMesh"""

import time
from typing import Optional

import cv2
import mediapipe as mp
import numpy as np

from models.data_models import LandmarkSample
from detectors.landmarks import make_sample


class FaceDetector:
    """使用 MediaPipe FaceMesh 检测人脸关键点，输出归一化 3D 坐标"""

    def __init__(
        self,
        max_num_faces: int = 1,
        min_detection_confidence: float = 0.5,
    ):
        """初始化 MediaPipe FaceMesh（不启用虹膜细化，保证 468 个点）"""
        self._face_mesh = mp.solutions.face_mesh.FaceMesh(
            max_num_faces=max_num_faces,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=0.5,
            refine_landmarks=False,
        )

    def detect(self, frame: np.ndarray, timestamp: Optional[float] = None) -> Optional[LandmarkSample]:
        """
        检测单帧图像中的人脸关键点。

        Args:
            frame: BGR 格式的 OpenCV 图像帧
            timestamp: 帧时间戳（秒），缺省取 time.monotonic()

        Returns:
            LandmarkSample；未检测到人脸时返回 None
        """
        if timestamp is None:
            timestamp = time.monotonic()

        # BGR -> RGB
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False

        results = self._face_mesh.process(rgb_frame)

        if not results.multi_face_landmarks:
            return None

        face = results.multi_face_landmarks[0]
        points = [(lm.x, lm.y, lm.z) for lm in face.landmark]

        return make_sample(points, timestamp)

    def close(self):
        """释放 MediaPipe 资源"""
        self._face_mesh.close()
