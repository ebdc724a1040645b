import time
import numpy as np
import pytest
from fastapi.testclient import TestClient

from api.main import app
import api.routes as routes
from coach.config import Settings
from coach.interview import InterviewSession
from coach.models import Keypoint
from tests.conftest import UPRIGHT


def frame_json(drop=(), **moves):
    points = dict(UPRIGHT)
    points.update(moves)
    return [{"name": n, "x": x, "y": y} for n, (x, y) in points.items() if n not in drop]


@pytest.fixture(autouse=True)
def fresh_interview(monkeypatch):
    s = Settings(EMOTION_INTERVAL=0.05, READY_POLL_INTERVAL=0.01)
    monkeypatch.setattr(routes, "settings", s)
    monkeypatch.setattr(routes, "interview", InterviewSession(s))


def test_health():
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == 200 and r.json() == {"status": "ok"}

def test_posture_classify():
    client = TestClient(app)
    r = client.post("/posture/classify", json={"keypoints": frame_json()})
    assert r.status_code == 200
    assert r.json() == {"flags": [], "label": "Good Posture"}

    r = client.post("/posture/classify", json={"keypoints": frame_json(nose=(250.0, 240.0)), "baseline": {"ratio": 1.0}})
    assert r.json()["label"] == "Slouching"

    r = client.post("/posture/classify", json={"keypoints": frame_json(drop=("nose",))})
    assert r.json()["flags"] == ["Key points hidden"]

def test_emotion_dominant():
    client = TestClient(app)
    r = client.post("/emotion/dominant", json={"scores": {"happy": 0.2, "sad": 0.6, "neutral": 0.2}})
    assert r.json() == {"emotion": "sad", "negative": True}
    r = client.post("/emotion/dominant", json={})
    assert r.json()["emotion"] == "no-face"

def test_baseline_from_last_frame():
    client = TestClient(app)
    r = client.post("/session/baseline")
    assert r.status_code == 400
    assert r.json()["detail"]["reason"] == "NOT_READY"

    client.post("/session/observe/pose", json={"poses": [frame_json()]})
    r = client.post("/session/baseline")
    assert r.status_code == 200
    assert r.json()["baseline"] == {"ratio": 1.0}

def test_baseline_too_narrow():
    client = TestClient(app)
    body = {"keypoints": frame_json(left_shoulder=(255.0, 300.0), right_shoulder=(250.0, 300.0))}
    r = client.post("/session/baseline", json=body)
    assert r.status_code == 400
    assert r.json()["detail"]["reason"] == "SHOULDERS_TOO_NARROW"

def test_answer_flow_and_distributions():
    with TestClient(app) as client:
        r = client.post("/answer/start", json={"question": "Tell me about a failure."})
        assert r.json()["status"] == "recording"
        assert client.post("/answer/start").json()["status"] == "already_recording"

        client.post("/session/observe/pose", json={"poses": [frame_json()]})
        client.post("/session/observe/pose", json={"poses": [frame_json()]})
        r = client.post("/session/observe/pose", json={"poses": [frame_json(drop=("left_shoulder",))]})
        assert r.json()["flags"] == ["Key points hidden"]
        assert r.json()["alerts"]["posture"] == "pending"
        client.post("/session/observe/expression", json={"scores": {"happy": 0.7, "sad": 0.3}})
        client.post("/session/observe/expression", json={"scores": None})

        assert client.get("/distribution/emotion").json() == {"happy": 100}

        r = client.post("/answer/stop")
        assert r.status_code == 200
        body = r.json()
        assert body["posture_distribution"] == {"Good Posture": 67, "Key points hidden": 33}
        assert body["emotion_distribution"] == {"happy": 100}
        assert body["record"]["question"] == "Tell me about a failure."

        assert client.post("/answer/stop").status_code == 409
        status = client.get("/session/status").json()
        assert status["alerts"] == {"posture": "idle", "emotion": "idle"}
        assert status["recording"] is False

        report = client.post("/interview/end").json()
        assert len(report["answers"]) == 1

def test_observe_without_recording_does_not_accumulate():
    client = TestClient(app)
    r = client.post("/session/observe/pose", json={"poses": []})
    assert r.json()["flags"] is None
    assert r.json()["status"]["posture_label"] == "Calibrating..."
    client.post("/session/observe/pose", json={"poses": [frame_json()]})
    assert client.get("/distribution/posture").json() == {}
    assert client.get("/distribution/voice").status_code == 422

def test_session_reset():
    client = TestClient(app)
    client.post("/session/baseline", json={"keypoints": frame_json()})
    assert client.post("/session/reset").json() == {"status": "reset"}
    assert client.get("/session/status").json()["status"]["baseline"] is None


class FakeSource:
    released = False
    def dimensions(self): return 64, 48
    def read(self): return np.zeros((48, 64, 3), dtype=np.uint8)
    def release(self): FakeSource.released = True

class FakePose:
    def detect(self, frame):
        return [[Keypoint(name=n, x=x, y=y) for n, (x, y) in UPRIGHT.items()]]

class FakeExpression:
    def detect(self, frame): return {"neutral": 1.0}

def test_live_start_status_stop(monkeypatch):
    FakeSource.released = False
    monkeypatch.setattr(routes, "_live_components", lambda: (FakeSource(), FakePose(), FakeExpression()))
    with TestClient(app) as client:
        assert client.get("/live/status").json()["running"] is False
        assert client.post("/live/stop").json()["status"] == "not_running"
        assert client.post("/live/start").json()["status"] == "started"
        assert client.post("/live/start").json()["status"] == "already_running"
        time.sleep(0.2)
        body = client.get("/live/status").json()
        assert body["running"] is True and body["ready"] is True
        assert body["frames_processed"] > 0
        assert client.get("/session/status").json()["status"]["emotion_label"] == "Neutral"
        assert client.post("/live/stop").json()["status"] == "stopped"
    assert FakeSource.released

def test_live_start_without_camera(monkeypatch):
    def broken():
        raise RuntimeError("Could not open camera index 0")
    monkeypatch.setattr(routes, "_live_components", broken)
    client = TestClient(app)
    r = client.post("/live/start")
    assert r.status_code == 503

def test_live_start_model_failure_leaves_camera_closed(monkeypatch):
    opened = []
    def no_model(settings):
        raise RuntimeError("pose model unavailable")
    monkeypatch.setattr(routes, "MediaPipePoseDetector", no_model)
    monkeypatch.setattr(routes, "CameraSource", lambda index: opened.append(index))
    client = TestClient(app)
    r = client.post("/live/start")
    assert r.status_code == 503
    assert "pose model unavailable" in r.json()["detail"]
    assert opened == []
