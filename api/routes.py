"""
REST endpoints for posture / emotion coaching.
"""
from typing import Literal
import logging

from fastapi import APIRouter, HTTPException

from coach.config import Settings
from coach.detection import CameraSource, MediaPipePoseDetector
from coach.emotion import DeepFaceExpressionDetector, dominant_emotion, is_negative_emotion
from coach.interview import InterviewSession
from coach.models import (
    AnswerStart, CalibrateRequest, ClassifyRequest, ClassifyResponse, EmotionRequest,
    EmotionResponse, ExpressionObservation, GOOD_POSTURE, PoseObservation,
)
from coach.posture import classify_posture

router = APIRouter()
settings = Settings()
interview = InterviewSession(settings)
logger = logging.getLogger(__name__)


def _live_components():
    """Camera + inference capabilities for the live loops. The camera opens last."""
    pose = MediaPipePoseDetector(settings)
    expression = DeepFaceExpressionDetector(settings)
    return CameraSource(settings.CAMERA_INDEX), pose, expression


def _session_status() -> dict:
    coaching = interview.coaching
    return {
        "status": coaching.status.model_dump(),
        "alerts": {k: v.value for k, v in coaching.alert_states().items()},
        "recording": interview.recording,
        "question_index": interview.current_index,
        "answers_processing": interview.tracker.count,
        "notifications": [n.model_dump() for n in interview.notifications.items],
    }


# ---- stateless classification ----

@router.post("/posture/classify", response_model=ClassifyResponse)
async def posture_classify(body: ClassifyRequest):
    """
    Classify one frame of keypoints against an optional baseline.

    Returns:
        ClassifyResponse: flags in priority order and the label shown to the user.
    """
    flags = classify_posture(body.keypoints, body.baseline, settings)
    return ClassifyResponse(flags=flags, label=flags[0].value if flags else GOOD_POSTURE)

@router.post("/emotion/dominant", response_model=EmotionResponse)
async def emotion_dominant(body: EmotionRequest):
    emotion = dominant_emotion(body.scores)
    return EmotionResponse(emotion=emotion, negative=is_negative_emotion(emotion, settings.NEGATIVE_EMOTIONS))


# ---- session ----

@router.post("/session/baseline")
async def session_baseline(body: CalibrateRequest | None = None):
    """
    Calibrate the baseline posture from the given keypoints, or from the last
    frame the session observed when none are given.
    """
    keypoints = body.keypoints if body is not None else None
    result = interview.coaching.set_baseline(keypoints)
    if not result.success:
        logger.debug(f"[api] calibration rejected reason={result.reason}")
        raise HTTPException(status_code=400, detail={"reason": result.reason, "message": result.message})
    return result.model_dump()

@router.post("/session/observe/pose")
async def observe_pose(body: PoseObservation):
    flags = interview.coaching.on_pose_result(body.poses, interview.recording)
    payload = _session_status()
    payload["flags"] = [f.value for f in flags] if flags is not None else None
    return payload

@router.post("/session/observe/expression")
async def observe_expression(body: ExpressionObservation):
    emotion = interview.coaching.on_expression_result(body.scores, interview.recording)
    payload = _session_status()
    payload["emotion"] = emotion
    return payload

@router.get("/session/status")
async def session_status():
    return _session_status()

@router.post("/session/reset")
async def session_reset():
    await interview.reset()
    return {"status": "reset"}


# ---- answers ----

@router.post("/answer/start")
async def answer_start(body: AnswerStart | None = None):
    if interview.recording:
        return {"status": "already_recording"}
    interview.start_answer(body.question if body is not None else None)
    return {"status": "recording", "question_index": interview.current_index + 1}

@router.post("/answer/stop")
async def answer_stop():
    if not interview.recording:
        raise HTTPException(status_code=409, detail="No answer is being recorded")
    posture = interview.coaching.get_distribution("posture")
    emotion = interview.coaching.get_distribution("emotion")
    task = interview.stop_answer()
    record = await task
    return {
        "posture_distribution": posture,
        "emotion_distribution": emotion,
        "record": record.model_dump() if record is not None else None,
    }

@router.get("/distribution/{kind}")
async def distribution(kind: Literal["posture", "emotion"]):
    return interview.coaching.get_distribution(kind)

@router.post("/interview/end")
async def interview_end():
    try:
        report = await interview.end()
    except Exception as e:
        logger.exception("[api] interview end failed")
        raise HTTPException(status_code=500, detail=str(e))
    return report.model_dump(mode="json")


# ---- live camera loops ----

@router.post("/live/start")
async def live_start():
    if interview.driver is not None and interview.driver.running:
        return {"status": "already_running"}
    try:
        source, pose, expression = _live_components()
    except Exception as e:
        logger.exception("[api] live components unavailable")
        raise HTTPException(status_code=503, detail=str(e))
    await interview.start_detection(source, pose, expression)
    return {"status": "started"}

@router.get("/live/status")
async def live_status():
    driver = interview.driver
    return {
        "running": bool(driver is not None and driver.running),
        "ready": bool(driver is not None and driver.ready),
        "frames_processed": driver.frames_processed if driver is not None else 0,
    }

@router.post("/live/stop")
async def live_stop():
    if interview.driver is None or not interview.driver.running:
        return {"status": "not_running"}
    try:
        await interview.stop_detection()
    except Exception as e:
        logger.exception("[api] detection loop failed")
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "stopped"}
