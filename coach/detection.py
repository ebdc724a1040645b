# coach/detection.py
"""
Detection loop driver.

Runs two asyncio loops against one frame source:
- a continuous pose loop (back-to-back inferences, never overlapping)
- a fixed-interval expression loop (every EMOTION_INTERVAL seconds)

Blocking inference and camera reads run in worker threads via
asyncio.to_thread; their results are handed to the CoachingSession on the
event-loop thread, so session state needs no locking.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import cv2
import numpy as np

from coach.config import Settings
from coach.models import Keypoint
from coach.session import CoachingSession

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    def read(self) -> Optional[np.ndarray]: ...
    def dimensions(self) -> Tuple[int, int]: ...
    def release(self) -> None: ...


class PoseDetector(Protocol):
    def detect(self, frame) -> List[List[Keypoint]]: ...


class ExpressionDetector(Protocol):
    def detect(self, frame) -> Optional[Dict[str, float]]: ...


class CameraSource:
    """OpenCV webcam frame source. Reads are serialized with a lock."""
    def __init__(self, camera_index: int = 0):
        self.camera_index = camera_index
        self._lock = threading.Lock()
        self._cap = cv2.VideoCapture(camera_index)
        if not self._cap.isOpened():
            raise RuntimeError(f"Could not open camera index {camera_index}")

    def read(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._cap is None:
                return None
            ok, frame = self._cap.read()
        return frame if ok else None

    def dimensions(self) -> Tuple[int, int]:
        with self._lock:
            if self._cap is None:
                return 0, 0
            w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
            h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        return w, h

    def release(self) -> None:
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None


class MediaPipePoseDetector:
    """
    BlazePose via MediaPipe. Returns zero or one subject with landmarks in
    pixel coordinates; landmarks below the visibility threshold are omitted.
    """
    def __init__(self, settings: Settings):
        # Lazy import so tests can inject a fake 'mediapipe' module
        import mediapipe as mp

        self.visibility_threshold = settings.POSE_VISIBILITY_THRESHOLD
        self._mp_pose = mp.solutions.pose
        self._pose = self._mp_pose.Pose(
            static_image_mode=False,
            model_complexity=0,
            smooth_landmarks=True,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5,
        )
        self._landmark_names = {lm.name.lower(): lm for lm in self._mp_pose.PoseLandmark}

    def detect(self, frame_bgr) -> List[List[Keypoint]]:
        height, width = frame_bgr.shape[:2]
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        results = self._pose.process(frame_rgb)
        if results.pose_landmarks is None:
            return []

        keypoints: List[Keypoint] = []
        for name, idx in self._landmark_names.items():
            lm = results.pose_landmarks.landmark[idx]
            if lm.visibility < self.visibility_threshold:
                continue
            keypoints.append(Keypoint(name=name, x=lm.x * width, y=lm.y * height, score=float(lm.visibility)))
        return [keypoints]

    def close(self) -> None:
        self._pose.close()


class DetectionDriver:
    """Owns the pose and expression loops; start() and stop() act on both."""
    def __init__(self,
                 session: CoachingSession,
                 pose_detector: PoseDetector,
                 expression_detector: ExpressionDetector,
                 settings: Settings,
                 is_recording: Callable[[], bool] = lambda: False):
        self.session = session
        self.pose_detector = pose_detector
        self.expression_detector = expression_detector
        self.s = settings
        self.is_recording = is_recording
        self._source: Optional[FrameSource] = None
        self._ready: Optional[asyncio.Event] = None
        self._tasks: List[asyncio.Task] = []
        self.frames_processed = 0
        self.expressions_processed = 0

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def ready(self) -> bool:
        return self._ready is not None and self._ready.is_set()

    async def start(self, source: FrameSource) -> None:
        if self._tasks:
            return
        self._source = source
        self._ready = asyncio.Event()
        self._tasks = [
            asyncio.create_task(self._pose_loop(), name="pose-loop"),
            asyncio.create_task(self._expression_loop(), name="expression-loop"),
        ]
        for task in self._tasks:
            task.add_done_callback(self._log_failure)
        logger.debug("[driver] started")

    async def stop(self) -> None:
        """
        Cancel both loops, pending alert timers and release the source.
        Re-raises the first inference error a loop died from, after cleanup.
        """
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        self.session.cancel_alerts()
        if self._source is not None:
            self._source.release()
            self._source = None
        logger.debug("[driver] stopped")
        errors = [r for r in results if isinstance(r, Exception)]
        if errors:
            raise errors[0]

    async def wait_ready(self) -> None:
        if self._ready is not None:
            await self._ready.wait()

    # ---- loops ----
    async def _wait_for_dimensions(self) -> None:
        while True:
            w, h = self._source.dimensions()
            if w > 0 and h > 0:
                logger.debug(f"[driver] frame source ready {w}x{h}")
                self._ready.set()
                return
            await asyncio.sleep(self.s.READY_POLL_INTERVAL)

    async def _pose_loop(self) -> None:
        await self._wait_for_dimensions()
        while True:
            frame = await asyncio.to_thread(self._source.read)
            if frame is None:
                await asyncio.sleep(self.s.READY_POLL_INTERVAL)
                continue
            poses = await asyncio.to_thread(self.pose_detector.detect, frame)
            self.session.on_pose_result(poses, self.is_recording())
            self.frames_processed += 1
            # yield so the expression loop and timers get a turn
            await asyncio.sleep(0)

    async def _expression_loop(self) -> None:
        await self._ready.wait()
        loop = asyncio.get_running_loop()
        next_t = loop.time() + self.s.EMOTION_INTERVAL
        while True:
            await asyncio.sleep(max(0.0, next_t - loop.time()))
            # skip missed ticks instead of bursting after a slow inference
            next_t = max(next_t + self.s.EMOTION_INTERVAL, loop.time())
            frame = await asyncio.to_thread(self._source.read)
            if frame is None:
                continue
            scores = await asyncio.to_thread(self.expression_detector.detect, frame)
            self.session.on_expression_result(scores, self.is_recording())
            self.expressions_processed += 1

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[driver] {task.get_name()} failed: {exc!r}")
