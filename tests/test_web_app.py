"""Flask 接口测试：推送式关键点/运动样本、配置、日志与会话控制"""

import pytest

import web_app
from conftest import build_points
from engine.monitor import MonitoringEngine
from engine.scheduler import ManualScheduler


@pytest.fixture
def client(monkeypatch):
    system = web_app.WebMonitoringSystem()
    system.engine = MonitoringEngine(
        alert_sink=system.alerts,
        rest_stops=system.rest_stop_finder,
        scheduler=ManualScheduler(),
    )
    monkeypatch.setattr(web_app, "system", system)
    web_app.app.config["TESTING"] = True
    with web_app.app.test_client() as c:
        yield c
    system.stop()


def _start(client):
    resp = client.post("/api/start", json={"camera": False, "simulate_motion": False})
    assert resp.get_json()["success"]


def _points(**kwargs):
    return build_points(**kwargs).tolist()


class TestSession:
    def test_start_and_stop(self, client):
        _start(client)
        assert client.get("/api/data").get_json()["monitoring"]

        data = client.post("/api/stop").get_json()
        assert data["success"]
        assert data["summary"]["safety_score"] == 100
        assert not client.get("/api/data").get_json()["monitoring"]

    def test_stop_when_idle(self, client):
        assert client.post("/api/stop").get_json()["summary"] is None


class TestLandmarks:
    def test_rejected_when_not_monitoring(self, client):
        resp = client.post("/api/landmarks", json={"points": _points(), "timestamp": 0.0})
        assert resp.status_code == 409

    def test_sleep_detected(self, client):
        _start(client)
        for i in range(36):
            resp = client.post("/api/landmarks", json={"points": _points(ear=0.15), "timestamp": i * 0.1})
        data = resp.get_json()
        assert data["status"] == "SLEEPING - WAKE UP!"
        assert data["level"] == "danger"
        assert client.get("/api/data").get_json()["episode_count"] == 1

    def test_wrong_shape(self, client):
        _start(client)
        resp = client.post("/api/landmarks", json={"points": [[0.0, 0.0, 0.0]] * 10, "timestamp": 0.0})
        assert resp.status_code == 400
        assert not resp.get_json()["success"]

    def test_no_face(self, client):
        _start(client)
        data = client.post("/api/landmarks", json={"points": None, "timestamp": 1.0}).get_json()
        assert data["status"] == "No face detected"

    @pytest.mark.parametrize("timestamp", ["abc", None, True])
    def test_bad_timestamp_does_not_corrupt_state(self, client, timestamp):
        _start(client)
        resp = client.post("/api/landmarks", json={"points": _points(ear=0.15), "timestamp": timestamp})
        assert resp.status_code == 400
        assert web_app.system.engine.drowsiness.state.eyes_closed_since is None

        resp = client.post("/api/landmarks", json={"points": _points(ear=0.15), "timestamp": 1.0})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "Eyes closing..."

    def test_bad_timestamp_without_face(self, client):
        _start(client)
        resp = client.post("/api/landmarks", json={"points": None, "timestamp": "abc"})
        assert resp.status_code == 400


class TestMotion:
    def test_hard_braking(self, client):
        _start(client)
        data = client.post("/api/motion", json={"accel_x": -20, "accel_z": 9.8, "timestamp": 0.0}).get_json()
        assert data["event"] == "Hard Braking (20.0 m/s²)"
        assert data["intensity"] == "warning"
        assert client.get("/api/data").get_json()["safety_score"] == 90

    def test_bad_value(self, client):
        _start(client)
        resp = client.post("/api/motion", json={"accel_x": "fast"})
        assert resp.status_code == 400

    def test_rejected_when_not_monitoring(self, client):
        assert client.post("/api/motion", json={"accel_x": 1}).status_code == 409


class TestConfig:
    def test_get_defaults(self, client):
        data = client.get("/api/config").get_json()
        assert data["ear_threshold"] == 0.25
        assert data["wait_time_s"] == 3.0

    def test_update_clamped(self, client):
        data = client.post("/api/config", json={"wait_time_s": 60}).get_json()
        assert data["success"]
        assert data["config"]["wait_time_s"] == 10.0

    def test_invalid_rejected(self, client):
        resp = client.post("/api/config", json={"ear_threshold": "abc"})
        assert resp.status_code == 400
        assert client.get("/api/config").get_json()["ear_threshold"] == 0.25


class TestExtras:
    def test_logs_since(self, client):
        _start(client)
        data = client.get("/api/logs").get_json()
        assert data["logs"][0]["message"] == "Full system monitoring started!"
        total = data["total"]
        assert client.get(f"/api/logs?since={total}").get_json()["logs"] == []

    def test_music_controls(self, client):
        _start(client)
        assert client.post("/api/music/play").get_json()["success"]
        assert client.get("/api/data").get_json()["music"]["playing"]
        client.post("/api/music/pause")
        assert not client.get("/api/data").get_json()["music"]["playing"]

    def test_rest_stops(self, client):
        data = client.post("/api/rest_stops", json={"lat": 12.97, "lng": 77.59}).get_json()
        assert len(data["stops"]) == 5
        assert data["stops"][0]["distance_km"] <= data["stops"][-1]["distance_km"]

    @pytest.mark.parametrize("location", [{"lat": "north", "lng": 1}, {"lat": None, "lng": 1}, {"lat": "nan", "lng": 1}])
    def test_rest_stops_bad_location(self, client, location):
        resp = client.post("/api/rest_stops", json=location)
        assert resp.status_code == 400
        assert not resp.get_json()["success"]
        assert tuple(web_app.system.engine.location) == (28.7041, 77.1025)

    def test_config_flag_string_rejected(self, client):
        resp = client.post("/api/config", json={"sound_enabled": "false"})
        assert resp.status_code == 400
        assert client.get("/api/config").get_json()["sound_enabled"] is True

    def test_test_message(self, client):
        data = client.post("/api/message/test").get_json()
        assert data["success"]
        assert data["message"]
