# coach/session.py
"""
Per-session coaching state.

CoachingSession owns everything that used to live in ambient globals: the
baseline, the last good keypoints, the latest emotion, both alert machines,
the per-answer accumulators and the live status shown to the candidate.
Frames are classified whether or not an answer is being recorded; alerts and
accumulators are only driven while `recording` is true.
"""
from __future__ import annotations
import math
import time
import logging
from collections import Counter
from typing import Dict, List, Literal, Optional, Sequence

from coach.alerting import AlertState, Notify, Scheduler, SustainedConditionAlert
from coach.config import Settings
from coach.emotion import dominant_emotion, emotion_display, is_negative_emotion
from coach.keypoints import first_subject
from coach.models import (
    BaselinePosture, CalibrationResult, GOOD_POSTURE, Keypoint, LiveStatus,
    NO_FACE, Notification, PostureFlag,
)
from coach.posture import calibrate_baseline, classify_posture

logger = logging.getLogger(__name__)

Kind = Literal["posture", "emotion"]


def to_distribution(labels: Sequence[str]) -> Dict[str, int]:
    """
    Percentage of each label, rounded half-up independently.
    The values are not normalized, so they may not add up to exactly 100.
    """
    if not labels:
        return {}
    total = len(labels)
    return {k: int(math.floor(100.0 * n / total + 0.5)) for k, n in Counter(labels).items()}


class SessionAggregator:
    """Posture and emotion labels collected during the active answer."""
    def __init__(self):
        self.postures: List[str] = []
        self.emotions: List[str] = []

    def record_posture(self, label: str) -> None:
        self.postures.append(label)

    def record_emotion(self, label: str) -> None:
        self.emotions.append(label)

    def reset(self) -> None:
        self.postures = []
        self.emotions = []

    def distribution(self, kind: Kind) -> Dict[str, int]:
        if kind == "posture":
            return to_distribution(self.postures)
        if kind == "emotion":
            return to_distribution(self.emotions)
        raise ValueError(f"Unknown distribution kind: {kind}")


class NotificationLog:
    """Notification sink that logs and keeps every message."""
    def __init__(self):
        self.items: List[Notification] = []

    def __call__(self, message: str, severity: str = "info") -> None:
        level = logging.WARNING if severity == "error" else logging.INFO
        logger.log(level, f"[notify] ({severity}) {message}")
        self.items.append(Notification(message=message, severity=severity, ts=time.time()))

    def clear(self) -> None:
        self.items = []


class CoachingSession:
    def __init__(self,
                 settings: Settings,
                 notify: Optional[Notify] = None,
                 scheduler: Optional[Scheduler] = None):
        self.s = settings
        self.notify: Notify = notify if notify is not None else NotificationLog()
        self.baseline: Optional[BaselinePosture] = None
        self.last_keypoints: Optional[List[Keypoint]] = None
        self.last_emotion: str = NO_FACE
        self.aggregator = SessionAggregator()
        self.status = LiveStatus()
        self.posture_alert = SustainedConditionAlert(
            name="posture",
            threshold_ms=settings.POSTURE_ALERT_MS,
            message=settings.POSTURE_ALERT_MESSAGE,
            notify=self.notify,
            recheck=self._posture_still_bad,
            scheduler=scheduler,
        )
        self.emotion_alert = SustainedConditionAlert(
            name="emotion",
            threshold_ms=settings.EMOTION_ALERT_MS,
            message=settings.EMOTION_ALERT_MESSAGE,
            notify=self.notify,
            recheck=self._emotion_still_negative,
            scheduler=scheduler,
        )

    # ---- calibration ----
    def set_baseline(self, keypoints: Optional[Sequence[Keypoint]] = None) -> CalibrationResult:
        """Calibrate from `keypoints`, or from the last good frame when omitted."""
        frame = keypoints if keypoints is not None else self.last_keypoints
        result = calibrate_baseline(frame, self.s.MIN_SHOULDER_WIDTH)
        if result.success:
            self.baseline = result.baseline
            self.status.baseline = result.baseline
            self.notify(result.message, "success")
        else:
            logger.debug(f"[session] calibration failed reason={result.reason}")
            self.notify(result.message, "error")
        return result

    # ---- per-frame input ----
    def on_pose_result(self, poses: Optional[Sequence[Sequence[Keypoint]]], recording: bool) -> Optional[List[PostureFlag]]:
        """
        Handle one pose-inference result.

        Returns the posture flags, or None for a frame without a usable
        subject (only the live status changes in that case).
        """
        keypoints = first_subject(poses)
        if keypoints is None:
            self.status.posture_icon, self.status.posture_label = "🤔", "Calibrating..."
            return None

        self.last_keypoints = keypoints
        flags = classify_posture(keypoints, self.baseline, self.s)
        is_bad = len(flags) > 0
        label = flags[0].value if is_bad else GOOD_POSTURE
        self.status.posture_icon = "⚠️" if is_bad else "✅"
        self.status.posture_label = label
        self.status.recording = recording

        if recording:
            self.posture_alert.observe(is_bad)
            self.aggregator.record_posture(label)
        return flags

    def on_expression_result(self, scores: Optional[Dict[str, float]], recording: bool) -> str:
        """
        Handle one expression-inference result and return the dominant label.

        A missing face updates the live status and the latest emotion (so a
        pending emotion alert will not fire) but is neither accumulated nor
        treated as a negative observation.
        """
        emotion = dominant_emotion(scores)
        self.last_emotion = emotion
        self.status.emotion_icon, self.status.emotion_label = emotion_display(emotion)
        self.status.recording = recording
        if emotion == NO_FACE:
            return emotion

        if recording:
            self.emotion_alert.observe(is_negative_emotion(emotion, self.s.NEGATIVE_EMOTIONS))
            self.aggregator.record_emotion(emotion)
        return emotion

    # ---- answer lifecycle ----
    def begin_answer(self) -> None:
        self.aggregator.reset()
        self.status.recording = True

    def end_answer(self) -> Dict[str, Dict[str, int]]:
        self.cancel_alerts()
        self.status.recording = False
        return {
            "posture": self.get_distribution("posture"),
            "emotion": self.get_distribution("emotion"),
        }

    def get_distribution(self, kind: Kind) -> Dict[str, int]:
        return self.aggregator.distribution(kind)

    def alert_states(self) -> Dict[str, AlertState]:
        return {"posture": self.posture_alert.state, "emotion": self.emotion_alert.state}

    def cancel_alerts(self) -> None:
        self.posture_alert.reset()
        self.emotion_alert.reset()

    def reset(self) -> None:
        """Clear everything tied to the interview; the notification sink is kept."""
        self.cancel_alerts()
        self.baseline = None
        self.last_keypoints = None
        self.last_emotion = NO_FACE
        self.aggregator.reset()
        self.status = LiveStatus()

    # ---- alert re-checks ----
    def _posture_still_bad(self) -> bool:
        if self.last_keypoints is None:
            return False
        return len(classify_posture(self.last_keypoints, self.baseline, self.s)) > 0

    def _emotion_still_negative(self) -> bool:
        return is_negative_emotion(self.last_emotion, self.s.NEGATIVE_EMOTIONS)
