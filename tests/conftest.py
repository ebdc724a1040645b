import pytest

from coach.config import Settings
from coach.models import Keypoint

# Upright subject facing the camera: level shoulders 100 px apart
# (right shoulder on the image left), nose 100 px above them -> ratio 1.0.
UPRIGHT = {
    "nose": (250.0, 200.0),
    "left_eye": (265.0, 190.0),
    "right_eye": (235.0, 190.0),
    "left_ear": (280.0, 192.0),
    "right_ear": (220.0, 192.0),
    "mouth_left": (260.0, 215.0),
    "mouth_right": (240.0, 215.0),
    "left_shoulder": (300.0, 300.0),
    "right_shoulder": (200.0, 300.0),
}

@pytest.fixture
def settings():
    return Settings()

@pytest.fixture
def make_keypoints():
    """Build a keypoint frame from UPRIGHT, with `drop` names removed and kwargs moving points."""
    def _make(drop=(), **moves):
        points = dict(UPRIGHT)
        points.update(moves)
        return [Keypoint(name=n, x=x, y=y, score=0.9) for n, (x, y) in points.items() if n not in drop]
    return _make
