"""Flask Web 服务 - 疲劳驾驶监测系统"""

import math
import threading
import time

import cv2
from flask import Flask, Response, jsonify, request

from models.data_models import ConfigError, LandmarkShapeError, MotionSample
from detectors.landmarks import make_sample, validate_timestamp
from display.renderer import DisplayRenderer
from engine.dispatchers import AlertLog
from engine.monitor import MonitoringEngine
from routing.rest_stops import SimulatedRestStopFinder
from sensors.motion_simulator import MotionSimulator

app = Flask(__name__)


class WebMonitoringSystem:
    """Web 版监测系统：可选摄像头线程、模拟运动传感器，以及推送式样本接口。"""

    def __init__(self):
        self._cap = None
        self._running = False
        self._thread = None
        self._lock = threading.Lock()
        self._latest_frame = None
        self.alerts = AlertLog()
        self.rest_stop_finder = SimulatedRestStopFinder()
        self.engine = MonitoringEngine(alert_sink=self.alerts, rest_stops=self.rest_stop_finder)
        self.motion_simulator = MotionSimulator()
        self.face_detector = None
        self.renderer = None

    def start(self, use_camera=True, simulate_motion=True):
        """启动会话；use_camera 为 False 时只接受推送的样本。"""
        if self.engine.is_monitoring:
            return True
        if use_camera and not self._open_camera():
            self.alerts.emit("Error accessing camera", "danger")
            return False

        self.engine.start()
        if simulate_motion:
            self.motion_simulator.start(self.engine.process_motion)
        if use_camera:
            self._running = True
            self._thread = threading.Thread(target=self._process_loop, daemon=True)
            self._thread.start()
        return True

    def _open_camera(self):
        self._cap = cv2.VideoCapture(0)
        if not self._cap.isOpened():
            self._cap = None
            return False
        if self.face_detector is None:
            from detectors.face_detector import FaceDetector
            self.face_detector = FaceDetector()
            self.renderer = DisplayRenderer()
        return True

    def stop(self):
        """停止检测，返回行程总结。"""
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        self.motion_simulator.stop()
        summary = self.engine.stop()
        if self._cap and self._cap.isOpened():
            self._cap.release()
        self._cap = None
        return summary

    def _process_loop(self):
        """后台处理循环。"""
        while self._running:
            if not self._cap or not self._cap.isOpened():
                break
            ret, frame = self._cap.read()
            if not ret:
                continue

            sample = self.face_detector.detect(frame, time.monotonic())
            report = self.engine.process_face(sample)
            config = self.engine.config
            rendered = self.renderer.render(
                frame, sample, report, self.engine.get_status(),
                config.ear_threshold, config.mar_threshold,
            )

            _, jpeg = cv2.imencode(".jpg", rendered, [cv2.IMWRITE_JPEG_QUALITY, 80])
            with self._lock:
                self._latest_frame = jpeg.tobytes()

    def get_frame(self):
        with self._lock:
            return self._latest_frame


# 全局监测系统实例
system = WebMonitoringSystem()


def _summary_dict(summary):
    if summary is None:
        return None
    return {
        "duration_min": summary.duration_min,
        "safety_score": summary.safety_score,
        "intervention_count": summary.intervention_count,
        "episode_count": summary.episode_count,
    }


# ---- Flask 路由 ----

@app.route("/api/start", methods=["POST"])
def api_start():
    data = request.get_json(silent=True) or {}
    ok = system.start(
        use_camera=data.get("camera", True),
        simulate_motion=data.get("simulate_motion", True),
    )
    return jsonify({"success": ok, "message": "Monitoring started" if ok else "Error accessing camera"})


@app.route("/api/stop", methods=["POST"])
def api_stop():
    summary = system.stop()
    return jsonify({"success": True, "summary": _summary_dict(summary)})


@app.route("/api/data")
def api_data():
    return jsonify(system.engine.get_status())


@app.route("/api/config", methods=["GET", "POST"])
def api_config():
    if request.method == "GET":
        return jsonify(vars(system.engine.config))
    data = request.get_json(force=True)
    try:
        config = system.engine.update_config(data)
    except ConfigError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    return jsonify({"success": True, "config": vars(config)})


@app.route("/api/landmarks", methods=["POST"])
def api_landmarks():
    """外部关键点提供方推送一帧；points 为空表示未检测到人脸。"""
    data = request.get_json(force=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "message": "Expected a JSON object"}), 400
    points = data.get("points")
    try:
        timestamp = validate_timestamp(data.get("timestamp", time.monotonic()))
        sample = make_sample(points, timestamp) if points else None
    except LandmarkShapeError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    report = system.engine.process_face(sample, now=timestamp)
    if report is None:
        return jsonify({"success": False, "message": "Monitoring not active"}), 409
    return jsonify({
        "success": True,
        "fatigue": round(report.fatigue.score, 1),
        "status": report.status,
        "level": report.level,
    })


@app.route("/api/motion", methods=["POST"])
def api_motion():
    data = request.get_json(force=True)
    try:
        sample = MotionSample(
            accel_x=float(data.get("accel_x", 0.0)),
            accel_y=float(data.get("accel_y", 0.0)),
            accel_z=float(data.get("accel_z", 0.0)),
            gyro_x=float(data.get("gyro_x", 0.0)),
            gyro_y=float(data.get("gyro_y", 0.0)),
            gyro_z=float(data.get("gyro_z", 0.0)),
            timestamp=float(data.get("timestamp", time.monotonic())),
        )
    except (TypeError, ValueError) as e:
        return jsonify({"success": False, "message": str(e)}), 400

    result = system.engine.process_motion(sample)
    if result is None:
        return jsonify({"success": False, "message": "Monitoring not active"}), 409
    return jsonify({
        "success": True,
        "total_accel": round(result.total_accel, 2),
        "intensity": result.intensity,
        "event": result.event.message if result.event else None,
    })


@app.route("/api/music/play", methods=["POST"])
def api_music_play():
    ok = system.engine.play_music(user_initiated=True)
    return jsonify({"success": ok})


@app.route("/api/music/pause", methods=["POST"])
def api_music_pause():
    system.engine.pause_music()
    return jsonify({"success": True})


@app.route("/api/message/test", methods=["POST"])
def api_test_message():
    return jsonify({"success": True, "message": system.engine.speak_test_message()})


@app.route("/api/rest_stops", methods=["POST"])
def api_rest_stops():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "message": "Expected a JSON object"}), 400
    if "lat" in data and "lng" in data:
        try:
            lat, lng = float(data["lat"]), float(data["lng"])
        except (TypeError, ValueError) as e:
            return jsonify({"success": False, "message": str(e)}), 400
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return jsonify({"success": False, "message": "lat/lng must be finite"}), 400
        system.engine.set_location(lat, lng)
    stops = system.engine.find_rest_stops()
    system.alerts.emit("Found nearby rest stops with directions", "info")
    return jsonify({"stops": [vars(s) for s in stops]})


@app.route("/api/logs")
def api_logs():
    since = request.args.get("since", 0, type=int)
    logs, total = system.alerts.get_logs(since)
    return jsonify({"logs": logs, "total": total})


@app.route("/video_feed")
def video_feed():
    def generate():
        while True:
            frame = system.get_frame()
            if frame is not None:
                yield (b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + frame + b"\r\n")
            time.sleep(0.03)
    return Response(generate(), mimetype="multipart/x-mixed-replace; boundary=frame")


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
