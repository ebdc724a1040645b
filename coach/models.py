"""
Pydantic data models for the coaching engine and API IO.
"""
from __future__ import annotations
from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Literal

GOOD_POSTURE = "Good Posture"
NO_FACE = "no-face"

class Keypoint(BaseModel):
    name: str
    x: float
    y: float
    score: Optional[float] = None

class PostureFlag(str, Enum):
    """Posture problems in priority order."""
    SLOUCHING = "Slouching"
    LOOKING_DOWN = "Looking Down"
    LOOKING_UP = "Looking Up"
    LEANING_HEAD = "Leaning Head"
    TILTED_SHOULDERS = "Tilted Shoulders"
    KEY_POINTS_HIDDEN = "Key points hidden"

class BaselinePosture(BaseModel):
    ratio: float

class CalibrationResult(BaseModel):
    success: bool
    message: str
    reason: Optional[Literal["NOT_READY", "LANDMARKS_MISSING", "SHOULDERS_TOO_NARROW"]] = None
    baseline: Optional[BaselinePosture] = None

class Notification(BaseModel):
    message: str
    severity: Literal["success", "error", "info"] = "info"
    ts: float

class LiveStatus(BaseModel):
    posture_icon: str = "🤔"
    posture_label: str = "Calibrating..."
    emotion_icon: str = "😐"
    emotion_label: str = "No Face"
    recording: bool = False
    baseline: Optional[BaselinePosture] = None


# interview models


class AnswerPayload(BaseModel):
    question_index: int
    question: Optional[str] = None
    posture_distribution: Dict[str, int] = Field(default_factory=dict)
    emotion_distribution: Dict[str, int] = Field(default_factory=dict)
    audio: bytes = b""

class AnswerRecord(BaseModel):
    question_index: int
    question: Optional[str] = None
    posture_distribution: Dict[str, int] = Field(default_factory=dict)
    emotion_distribution: Dict[str, int] = Field(default_factory=dict)
    evaluation: Optional[dict] = None

class InterviewReport(BaseModel):
    answers: List[AnswerRecord] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)


# API IO models


class ClassifyRequest(BaseModel):
    keypoints: List[Keypoint]
    baseline: Optional[BaselinePosture] = None

class ClassifyResponse(BaseModel):
    flags: List[PostureFlag]
    label: str

class EmotionRequest(BaseModel):
    scores: Optional[Dict[str, float]] = None

class EmotionResponse(BaseModel):
    emotion: str
    negative: bool

class CalibrateRequest(BaseModel):
    keypoints: Optional[List[Keypoint]] = None

class PoseObservation(BaseModel):
    poses: List[List[Keypoint]] = Field(default_factory=list)

class ExpressionObservation(BaseModel):
    scores: Optional[Dict[str, float]] = None

class AnswerStart(BaseModel):
    question: Optional[str] = None
