"""
Posture classification and baseline calibration from 2-D keypoints.

Coordinates are image pixels (y grows downwards). All thresholds come from
Settings so they can be tuned without touching code.
"""
from __future__ import annotations
import math
import logging
from typing import List, Optional, Sequence

from coach.config import Settings
from coach.keypoints import find_keypoint, is_valid_frame, midpoint
from coach.models import BaselinePosture, CalibrationResult, Keypoint, PostureFlag

logger = logging.getLogger(__name__)

NOT_READY_MSG = "Still calibrating. Please wait a moment and try again."
LANDMARKS_MISSING_MSG = "Could not detect shoulders clearly. Try adjusting your position."
TOO_NARROW_MSG = "Cannot determine shoulder width. Please sit upright."
SAVED_MSG = "Baseline posture saved!"


def posture_ratio(left_shoulder: Keypoint, right_shoulder: Keypoint, nose: Keypoint) -> Optional[float]:
    """Vertical nose-to-shoulder gap divided by shoulder width (None if width is 0)."""
    width = abs(right_shoulder.x - left_shoulder.x)
    if width <= 0:
        return None
    avg_shoulder_y = (left_shoulder.y + right_shoulder.y) / 2.0
    return (avg_shoulder_y - nose.y) / width


def calibrate_baseline(keypoints: Sequence[Keypoint] | None,
                       min_shoulder_width: float = 10.0) -> CalibrationResult:
    """
    Compute a baseline posture from one frame.

    Preconditions are checked in order and each failure carries its own
    reason code and user-facing message:
      - NOT_READY: no frame observed yet
      - LANDMARKS_MISSING: shoulders or nose not detected (or not finite)
      - SHOULDERS_TOO_NARROW: shoulder width below `min_shoulder_width`
    """
    if not keypoints:
        return CalibrationResult(success=False, reason="NOT_READY", message=NOT_READY_MSG)

    ls = find_keypoint(keypoints, "left_shoulder")
    rs = find_keypoint(keypoints, "right_shoulder")
    nose = find_keypoint(keypoints, "nose")
    if ls is None or rs is None or nose is None or not is_valid_frame([ls, rs, nose]):
        return CalibrationResult(success=False, reason="LANDMARKS_MISSING", message=LANDMARKS_MISSING_MSG)

    width = abs(rs.x - ls.x)
    if width < min_shoulder_width or width <= 0:
        return CalibrationResult(success=False, reason="SHOULDERS_TOO_NARROW", message=TOO_NARROW_MSG)

    ratio = posture_ratio(ls, rs, nose)
    logger.debug(f"[posture] baseline ratio={ratio:.4f} shoulder_width={width:.1f}")
    return CalibrationResult(success=True, message=SAVED_MSG, baseline=BaselinePosture(ratio=ratio))


def classify_posture(keypoints: Sequence[Keypoint] | None,
                     baseline: Optional[BaselinePosture] = None,
                     settings: Optional[Settings] = None) -> List[PostureFlag]:
    """
    Return the posture problems found in one frame, highest priority first.

    Without both shoulders and the nose, or with any non-finite coordinate,
    no judgement is made and the only flag is KEY_POINTS_HIDDEN. Otherwise
    the checks run in order: slouching (needs a baseline), looking down/up
    (needs eyes and ears), leaning head (needs mouth corners), tilted
    shoulders.
    """
    s = settings or Settings()
    if not is_valid_frame(keypoints):
        return [PostureFlag.KEY_POINTS_HIDDEN]
    ls = find_keypoint(keypoints, "left_shoulder")
    rs = find_keypoint(keypoints, "right_shoulder")
    nose = find_keypoint(keypoints, "nose")
    if ls is None or rs is None or nose is None:
        return [PostureFlag.KEY_POINTS_HIDDEN]

    flags: List[PostureFlag] = []
    shoulder_width = abs(rs.x - ls.x)

    # 1) slouching relative to baseline
    if baseline is not None and shoulder_width > 0:
        current = posture_ratio(ls, rs, nose)
        deviation = (current - baseline.ratio) / baseline.ratio if baseline.ratio else 0.0
        if deviation < s.SLOUCH_THRESHOLD:
            flags.append(PostureFlag.SLOUCHING)

    # 2) vertical head tilt
    l_eye, r_eye = find_keypoint(keypoints, "left_eye"), find_keypoint(keypoints, "right_eye")
    l_ear, r_ear = find_keypoint(keypoints, "left_ear"), find_keypoint(keypoints, "right_ear")
    if l_eye and r_eye and l_ear and r_ear:
        eye_distance = abs(l_eye.x - r_eye.x)
        rise = (l_ear.y + r_ear.y) / 2.0 - (l_eye.y + r_eye.y) / 2.0
        if eye_distance > 0:
            tilt = rise / eye_distance
        else:
            # coincident eyes: any vertical offset is an unbounded tilt
            tilt = math.copysign(math.inf, rise) if rise else 0.0
        if tilt < s.LOOK_DOWN_THRESHOLD:
            flags.append(PostureFlag.LOOKING_DOWN)
        elif tilt > s.LOOK_UP_THRESHOLD:
            flags.append(PostureFlag.LOOKING_UP)

    # 3) head leaning sideways
    m_left, m_right = find_keypoint(keypoints, "mouth_left"), find_keypoint(keypoints, "mouth_right")
    if m_left and m_right:
        mid_shoulder_x, _ = midpoint(ls, rs)
        mid_mouth_x, _ = midpoint(m_left, m_right)
        if abs(mid_mouth_x - mid_shoulder_x) > shoulder_width * s.HEAD_LEAN_FRACTION:
            flags.append(PostureFlag.LEANING_HEAD)

    # 4) shoulder line away from level
    angle = abs(math.degrees(math.atan2(rs.y - ls.y, rs.x - ls.x)))
    if angle < s.SHOULDER_LEVEL_MIN_DEG:
        flags.append(PostureFlag.TILTED_SHOULDERS)

    return flags
