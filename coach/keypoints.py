"""
Keypoint lookup helpers.
"""
from __future__ import annotations
import math
from typing import Optional, Sequence, List

from coach.models import Keypoint

def find_keypoint(keypoints: Sequence[Keypoint] | None, name: str) -> Optional[Keypoint]:
    """Return the first keypoint called `name`, or None."""
    for kp in keypoints or []:
        if kp.name == name:
            return kp
    return None

def is_valid_frame(keypoints: Sequence[Keypoint] | None) -> bool:
    if not keypoints:
        return False
    return all(math.isfinite(kp.x) and math.isfinite(kp.y) for kp in keypoints)

def first_subject(poses: Sequence[Sequence[Keypoint]] | None) -> Optional[List[Keypoint]]:
    """
    Pick the keypoints of the first detected subject.

    Returns None ("no signal") when nothing was detected or when any
    coordinate of the first subject is not a finite number.
    """
    if not poses:
        return None
    keypoints = list(poses[0] or [])
    if not is_valid_frame(keypoints):
        return None
    return keypoints

def midpoint(a: Keypoint, b: Keypoint) -> tuple[float, float]:
    return (a.x + b.x) / 2.0, (a.y + b.y) / 2.0
