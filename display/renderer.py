"""界面渲染模块 - 在视频帧上绘制关键点、指标、会话状态和危险警告。"""

from typing import Optional

import cv2
import numpy as np

from models.data_models import FrameReport, LandmarkSample
from detectors.landmarks import (
    LEFT_EYE_INDICES,
    MOUTH_CORNERS,
    MOUTH_VERTICAL_PAIRS,
    RIGHT_EYE_INDICES,
)

# BGR 颜色
_GREEN = (129, 185, 16)
_RED = (68, 68, 239)
_AMBER = (11, 158, 245)
_BLUE = (246, 130, 59)

_LEVEL_COLORS = {"safe": _GREEN, "warning": _AMBER, "danger": _RED}


def format_value(v: float) -> str:
    """格式化浮点数为三位小数字符串。"""
    return f"{v:.3f}"


class DisplayRenderer:
    """在视频帧上绘制检测结果和会话状态。"""

    # 状态文字映射
    _PHASE_TEXT = {
        "alert": "清醒",
        "eyes_closing": "闭眼中",
        "sleeping": "睡眠！",
    }

    def __init__(self, font_path: str = "SimHei"):
        """初始化中文字体，字体不存在时回退到 OpenCV 默认英文字体。"""
        self._pil_font = None
        self._use_pil = False

        try:
            font = self._try_load_font(font_path)
            if font is not None:
                self._pil_font = font
                self._use_pil = True
        except Exception:
            self._use_pil = False

    @staticmethod
    def _try_load_font(font_path: str):
        """尝试加载字体文件，返回 PIL ImageFont 或 None。"""
        from PIL import ImageFont

        try:
            return ImageFont.truetype(font_path, 20)
        except (OSError, IOError):
            pass

        common_paths = [
            "/usr/share/fonts/truetype/simhei/SimHei.ttf",
            "/usr/share/fonts/SimHei.ttf",
            "C:\\Windows\\Fonts\\simhei.ttf",
            "/System/Library/Fonts/STHeiti Medium.ttc",
        ]
        for path in common_paths:
            try:
                return ImageFont.truetype(path, 20)
            except (OSError, IOError):
                continue

        return None

    def render(
        self,
        frame: np.ndarray,
        sample: Optional[LandmarkSample],
        report: Optional[FrameReport],
        status: dict,
        ear_threshold: float,
        mar_threshold: float,
    ) -> np.ndarray:
        """渲染检测结果到视频帧，返回渲染后的帧图像。"""
        output = frame.copy()

        if sample is not None and report is not None and report.metrics is not None:
            eye_color = _RED if report.metrics.ear_avg < ear_threshold else _GREEN
            mouth_color = _AMBER if report.metrics.mar > mar_threshold else _BLUE
            self._draw_points(output, sample, LEFT_EYE_INDICES + RIGHT_EYE_INDICES, eye_color)
            mouth_indices = [i for pair in MOUTH_VERTICAL_PAIRS for i in pair] + list(MOUTH_CORNERS)
            self._draw_points(output, sample, mouth_indices, mouth_color)

        self._draw_info(output, report, status)

        if report is not None and report.level == "danger":
            self._draw_danger_banner(output, report.status)

        return output

    @staticmethod
    def _draw_points(frame: np.ndarray, sample: LandmarkSample, indices, color) -> None:
        """绘制指定关键点（归一化坐标转像素）。"""
        h, w = frame.shape[:2]
        for i in indices:
            x, y = sample.points[i][0], sample.points[i][1]
            cv2.circle(frame, (int(x * w), int(y * h)), 3, color, -1)

    def _draw_info(self, frame: np.ndarray, report: Optional[FrameReport], status: dict) -> None:
        """在左上角绘制指标、疲劳分数和安全分。"""
        lines = [
            f"EAR: {format_value(status['ear'])}",
            f"MAR: {format_value(status['mar'])}",
            f"Pose: {status['head_pose'] or '-'}",
            f"Fatigue: {status['fatigue']:.0f}%",
            f"Safety: {status['safety_score']}  Episodes: {status['episode_count']}",
        ]
        color = _LEVEL_COLORS.get(status["level"], _GREEN)

        if self._use_pil:
            phase = self._PHASE_TEXT.get(status["phase"], status["phase"])
            lines.append(f"状态: {phase}")
            self._draw_pil_lines(frame, lines, x=10, y_start=20, color=color)
        else:
            lines.append(f"Status: {status['status']}")
            y = 30
            for text in lines:
                cv2.putText(
                    frame, text, (10, y),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2,
                )
                y += 26

    @staticmethod
    def _draw_danger_banner(frame: np.ndarray, text: str) -> None:
        """在画面中央显示红色大字体警告。"""
        h, w = frame.shape[:2]
        font_scale = 1.2
        thickness = 3
        (text_w, text_h), _ = cv2.getTextSize(
            text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness
        )
        x = max(0, (w - text_w) // 2)
        y = (h + text_h) // 2
        cv2.putText(
            frame, text, (x, y),
            cv2.FONT_HERSHEY_SIMPLEX, font_scale, _RED, thickness,
        )

    def _draw_pil_lines(
        self,
        frame: np.ndarray,
        lines: list,
        x: int,
        y_start: int,
        color: tuple,
    ) -> None:
        """使用 PIL 在帧上绘制多行文字（BGR color -> RGB fill）。"""
        from PIL import Image, ImageDraw

        img_pil = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(img_pil)
        fill = (color[2], color[1], color[0])
        y = y_start
        for line in lines:
            draw.text((x, y), line, font=self._pil_font, fill=fill)
            y += 26
        result = cv2.cvtColor(np.array(img_pil), cv2.COLOR_RGB2BGR)
        frame[:] = result
