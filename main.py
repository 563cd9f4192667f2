"""疲劳驾驶监测系统入口文件"""

import argparse
import logging
import sys
import time

import cv2

from detectors.face_detector import FaceDetector
from display.renderer import DisplayRenderer
from engine.config import load_config
from engine.monitor import MonitoringEngine
from routing.rest_stops import SimulatedRestStopFinder
from sensors.motion_simulator import MotionSimulator

logger = logging.getLogger(__name__)


class DetectionSystem:
    """桌面版监测程序：摄像头主循环 -> 引擎，模拟运动传感器并行推送。"""

    def __init__(self, config_path=None, camera_index=0, simulate_motion=True, show_window=True):
        self.camera_index = camera_index
        self.show_window = show_window
        self._cap = None

        self.engine = MonitoringEngine(
            config=load_config(config_path),
            rest_stops=SimulatedRestStopFinder(),
        )
        self.face_detector = FaceDetector()
        self.renderer = DisplayRenderer() if show_window else None
        self.motion_simulator = MotionSimulator() if simulate_motion else None

    def run(self):
        """启动主检测循环。"""
        self._cap = cv2.VideoCapture(self.camera_index)

        if not self._cap.isOpened():
            logger.error("无法打开摄像头 %s", self.camera_index)
            sys.exit(1)

        self.engine.start()
        if self.motion_simulator is not None:
            self.motion_simulator.start(self.engine.process_motion)

        try:
            self._main_loop()
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def _main_loop(self):
        """视频流处理主循环。"""
        while True:
            ret, frame = self._cap.read()
            if not ret:
                continue

            sample = self.face_detector.detect(frame, time.monotonic())
            report = self.engine.process_face(sample)

            if self.renderer is not None:
                config = self.engine.config
                rendered = self.renderer.render(
                    frame, sample, report, self.engine.get_status(),
                    config.ear_threshold, config.mar_threshold,
                )
                cv2.imshow("DriveSense", rendered)

                # 按 q 退出
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break

    def stop(self):
        """结束会话、释放摄像头、关闭窗口与人脸检测器。"""
        if self.motion_simulator is not None:
            self.motion_simulator.stop()
        summary = self.engine.stop()
        if summary is not None:
            logger.info(
                "Trip completed: %.1f min, safety score %d, interventions %d, sleep episodes %d",
                summary.duration_min, summary.safety_score,
                summary.intervention_count, summary.episode_count,
            )
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        if self.show_window:
            cv2.destroyAllWindows()
        self.face_detector.close()


def main():
    parser = argparse.ArgumentParser(description="疲劳驾驶监测系统")
    parser.add_argument("--config", type=str, default=None, help="JSON 阈值配置文件路径")
    parser.add_argument("--camera", type=int, default=0, help="摄像头编号")
    parser.add_argument("--no-motion", action="store_true", help="不启动模拟运动传感器")
    parser.add_argument("--headless", action="store_true", help="不显示窗口")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="日志级别",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    system = DetectionSystem(
        config_path=args.config,
        camera_index=args.camera,
        simulate_motion=not args.no_motion,
        show_window=not args.headless,
    )
    system.run()


if __name__ == "__main__":
    main()
