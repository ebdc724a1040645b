import sys, types
import numpy as np

import coach.emotion as emotion_mod
from coach.config import Settings
from coach.emotion import dominant_emotion, emotion_display, is_negative_emotion, scores_from_result
from coach.models import NO_FACE

def test_dominant_emotion():
    assert dominant_emotion({"happy": 0.2, "sad": 0.6, "neutral": 0.2}) == "sad"

def test_dominant_emotion_tie_goes_to_first_key():
    assert dominant_emotion({"neutral": 0.5, "happy": 0.5}) == "neutral"
    assert dominant_emotion({"happy": 0.5, "neutral": 0.5}) == "happy"

def test_no_expression_data_is_no_face():
    assert dominant_emotion(None) == NO_FACE
    assert dominant_emotion({}) == NO_FACE

def test_is_negative_emotion():
    neg = Settings().NEGATIVE_EMOTIONS
    assert is_negative_emotion("sad", neg)
    assert is_negative_emotion("fear", neg)
    assert not is_negative_emotion("neutral", neg)
    assert not is_negative_emotion(NO_FACE, neg)

def test_emotion_display():
    assert emotion_display("happy") == ("😊", "Happy")
    assert emotion_display(NO_FACE) == ("😐", "No Face")
    assert emotion_display("bored")[0] == "🤔"

def test_scores_from_result():
    blob = {"emotion": {"happy": 80.0, "sad": 20.0}, "face_confidence": 0.93}
    assert scores_from_result(blob) == {"happy": 0.8, "sad": 0.2}
    assert scores_from_result({"emotion": {"happy": 80.0}, "face_confidence": 0}) is None
    assert scores_from_result({"dominant_emotion": "happy"}) is None
    assert scores_from_result("nope") is None

class DummyDeepFace:
    calls = []
    result = None

    @staticmethod
    def analyze(frame, actions, enforce_detection, detector_backend):
        DummyDeepFace.calls.append((actions, enforce_detection, detector_backend))
        return DummyDeepFace.result

def test_deepface_detector(monkeypatch):
    # ✅ Inject a fake 'deepface' module so `from deepface import DeepFace` works
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=DummyDeepFace))
    det = emotion_mod.DeepFaceExpressionDetector(Settings())
    frame = np.zeros((32, 32, 3), dtype=np.uint8)

    DummyDeepFace.result = {"emotion": {"neutral": 60.0, "sad": 40.0}, "face_confidence": 0.9}
    scores = det.detect(frame)
    assert dominant_emotion(scores) == "neutral"
    assert DummyDeepFace.calls[-1] == (["emotion"], False, "opencv")

    DummyDeepFace.result = []
    assert det.detect(frame) is None
