"""Visualization helpers for the live coaching window.

- draw_overlays: draw keypoints plus the posture / emotion labels of a LiveStatus
  onto a frame (green for good posture, red for a posture problem)

cv2.putText cannot render emoji, so only the text labels are drawn.
"""
from __future__ import annotations
import math
import cv2
import numpy as np
from typing import Optional, Sequence, Tuple

from coach.models import GOOD_POSTURE, Keypoint, LiveStatus

GOOD_COLOR = (80, 220, 90)
BAD_COLOR = (0, 0, 255)
INFO_COLOR = (235, 235, 235)

def draw_overlays(frame: np.ndarray,
                  status: LiveStatus,
                  keypoints: Optional[Sequence[Keypoint]] = None,
                  point_color: Tuple[int, int, int] = (255, 200, 0)) -> np.ndarray:
    """Draw keypoints and status labels.

    Args:
        frame: BGR image
        status: current live status of the coaching session
        keypoints: optional landmarks in pixel coordinates
        point_color: BGR color for keypoint dots

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    h, w = out.shape[:2]

    for kp in keypoints or []:
        if not (math.isfinite(kp.x) and math.isfinite(kp.y)):
            continue
        x = max(0, min(int(kp.x), w - 1)); y = max(0, min(int(kp.y), h - 1))
        cv2.circle(out, (x, y), 3, point_color, -1, cv2.LINE_AA)

    posture_color = GOOD_COLOR if status.posture_label == GOOD_POSTURE else BAD_COLOR
    cv2.putText(out, f"Posture: {status.posture_label}", (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX, 0.7, posture_color, 2, cv2.LINE_AA)
    cv2.putText(out, f"Emotion: {status.emotion_label}", (10, 60),
                cv2.FONT_HERSHEY_SIMPLEX, 0.7, INFO_COLOR, 2, cv2.LINE_AA)
    if status.recording:
        cv2.circle(out, (w - 20, 20), 8, BAD_COLOR, -1, cv2.LINE_AA)
    if status.baseline is None:
        cv2.putText(out, "Press 'b' to set baseline", (10, h - 15),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, INFO_COLOR, 1, cv2.LINE_AA)
    return out
