"""
Configuration for the coaching engine.
"""
from pydantic import BaseModel
from typing import List
import os

class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    EMOTION_INTERVAL: float = float(os.getenv("EMOTION_INTERVAL", "1.0"))
    READY_POLL_INTERVAL: float = float(os.getenv("READY_POLL_INTERVAL", "0.1"))

    # Sustained-condition alert thresholds (milliseconds)
    POSTURE_ALERT_MS: int = int(os.getenv("POSTURE_ALERT_MS", "5000"))
    EMOTION_ALERT_MS: int = int(os.getenv("EMOTION_ALERT_MS", "3000"))

    # Empirical posture thresholds
    SLOUCH_THRESHOLD: float = float(os.getenv("SLOUCH_THRESHOLD", "-0.25"))
    LOOK_DOWN_THRESHOLD: float = float(os.getenv("LOOK_DOWN_THRESHOLD", "-0.2"))
    LOOK_UP_THRESHOLD: float = float(os.getenv("LOOK_UP_THRESHOLD", "0.35"))
    HEAD_LEAN_FRACTION: float = float(os.getenv("HEAD_LEAN_FRACTION", "0.15"))
    SHOULDER_LEVEL_MIN_DEG: float = float(os.getenv("SHOULDER_LEVEL_MIN_DEG", "174"))
    MIN_SHOULDER_WIDTH: float = float(os.getenv("MIN_SHOULDER_WIDTH", "10"))

    POSE_VISIBILITY_THRESHOLD: float = float(os.getenv("POSE_VISIBILITY_THRESHOLD", "0.5"))
    EXPRESSION_DETECTOR_BACKEND: str = os.getenv("EXPRESSION_DETECTOR_BACKEND", "opencv")
    NEGATIVE_EMOTIONS: List[str] = os.getenv("NEGATIVE_EMOTIONS", "sad,angry,fear,fearful").split(",")

    POSTURE_ALERT_MESSAGE: str = os.getenv(
        "POSTURE_ALERT_MESSAGE", "💡 Coaching Tip: Try to maintain an upright posture."
    )
    EMOTION_ALERT_MESSAGE: str = os.getenv(
        "EMOTION_ALERT_MESSAGE", "💡 Coaching Tip: Remember to convey confidence and positivity!"
    )

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize NEGATIVE_EMOTIONS: strip blanks, lower-case, drop empties
        labels = [str(x).strip().lower() for x in (self.NEGATIVE_EMOTIONS or [])]
        object.__setattr__(self, "NEGATIVE_EMOTIONS", [x for x in labels if x])
