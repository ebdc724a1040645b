"""Run the live coaching window.

Usage:
    uvicorn api.main:app --reload  # (separate, for API)
    python scripts/live_overlay.py  # (to see camera overlay window)

Keys: 'b' set baseline, 'r' start/stop an answer, 'q' quit.
"""
from __future__ import annotations
import asyncio
import json
import logging

import cv2

from coach.config import Settings
from coach.detection import CameraSource, MediaPipePoseDetector
from coach.emotion import DeepFaceExpressionDetector
from coach.interview import InterviewSession
from coach.visual import draw_overlays

WINDOW = "Interview Coach (q to quit)"


async def run_live_coach(settings: Settings) -> None:
    """Open the camera, run both detection loops and draw the live status until 'q'."""
    interview = InterviewSession(settings)
    pose, expression = MediaPipePoseDetector(settings), DeepFaceExpressionDetector(settings)
    source = CameraSource(settings.CAMERA_INDEX)
    await interview.start_detection(source, pose, expression)
    try:
        while True:
            frame = await asyncio.to_thread(source.read)
            if frame is not None:
                annotated = draw_overlays(frame, interview.coaching.status, interview.coaching.last_keypoints)
                cv2.imshow(WINDOW, annotated)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("b"):
                interview.coaching.set_baseline()
            elif key == ord("r"):
                if interview.recording:
                    interview.stop_answer()
                else:
                    interview.start_answer()
            await asyncio.sleep(0.03)
    finally:
        try:
            report = await interview.end()
        finally:
            cv2.destroyAllWindows()
            pose.close()
    print(json.dumps(report.model_dump(mode="json"), indent=2, ensure_ascii=False))


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_live_coach(Settings()))
