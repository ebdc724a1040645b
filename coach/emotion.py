"""
Emotion classification from facial-expression scores, plus a DeepFace-backed
expression detector.
"""
# coach/emotion.py
from __future__ import annotations
from typing import Dict, Iterable, Mapping, Optional
import logging

from coach.config import Settings
from coach.models import NO_FACE

logger = logging.getLogger(__name__)

EMOTION_ICONS = {
    "happy": "😊",
    "sad": "😢",
    "neutral": "😐",
    "surprise": "😮",
    "surprised": "😮",
    "angry": "😠",
    "fear": "😨",
    "fearful": "😨",
    "disgust": "🤢",
    "disgusted": "🤢",
}

def dominant_emotion(scores: Optional[Mapping[str, float]]) -> str:
    """
    Return the label with the highest score.

    Ties go to the first key in the mapping's iteration order. An empty or
    missing mapping means no face was seen and yields the NO_FACE sentinel.
    """
    if not scores:
        return NO_FACE
    return max(scores, key=scores.get)

def is_negative_emotion(label: Optional[str], negative: Iterable[str]) -> bool:
    if not label or label == NO_FACE:
        return False
    return label.lower() in set(negative)

def emotion_display(label: str) -> tuple[str, str]:
    """(icon, label) pair for live display."""
    if label == NO_FACE:
        return "😐", "No Face"
    return EMOTION_ICONS.get(label, "🤔"), label.capitalize()

def scores_from_result(blob: Dict) -> Optional[Dict[str, float]]:
    """
    Normalize one DeepFace analyze() entry to {emotion: score in [0, 1]}.

    DeepFace reports percentages; a zero face_confidence means the backend
    fell back to the whole frame, i.e. no face.
    """
    if not isinstance(blob, dict):
        return None
    conf = blob.get("face_confidence")
    try:
        if conf is not None and float(conf) <= 0:
            return None
    except (TypeError, ValueError):
        pass
    em = blob.get("emotion")
    if not isinstance(em, dict) or not em:
        return None
    return {str(k): float(v) / 100.0 for k, v in em.items()}


class DeepFaceExpressionDetector:
    """Expression inference capability: frame -> scores of the first face, or None."""
    def __init__(self, settings: Settings):
        self.s = settings

    def detect(self, frame) -> Optional[Dict[str, float]]:
        # Lazy import for easier testing and to avoid loading heavy stacks too early
        from deepface import DeepFace

        result = DeepFace.analyze(
            frame,
            actions=["emotion"],
            enforce_detection=False,
            detector_backend=self.s.EXPRESSION_DETECTOR_BACKEND,
        )
        # DeepFace returns list[dict] or dict depending on version; normalize to list
        result = result if isinstance(result, list) else [result]
        if not result:
            logger.debug("[emotion] no face in frame")
            return None
        scores = scores_from_result(result[0])
        logger.debug(f"[emotion] faces={len(result)} scores={scores}")
        return scores
