"""
Interview lifecycle: questions, answer recording, answer processing and the
end-of-interview report.

Answers are evaluated by an external collaborator (transcription + feedback
service) passed in as an async callable. Each stopped answer is processed in
its own task; `AnswerTracker` counts the ones still in flight and signals when
none are left, so `end()` can wait for every answer before building the report.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from coach.config import Settings
from coach.detection import DetectionDriver, ExpressionDetector, FrameSource, PoseDetector
from coach.models import AnswerPayload, AnswerRecord, InterviewReport
from coach.session import CoachingSession, NotificationLog

logger = logging.getLogger(__name__)

Evaluator = Callable[[AnswerPayload], Awaitable[dict]]


class AnswerTracker:
    """Counter of answers being processed with an idle signal."""
    def __init__(self):
        self.count = 0
        self._idle = asyncio.Event()
        self._idle.set()

    def begin(self) -> None:
        self.count += 1
        self._idle.clear()

    def finish(self) -> None:
        self.count = max(0, self.count - 1)
        if self.count == 0:
            self._idle.set()

    async def wait_idle(self) -> None:
        await self._idle.wait()


class InterviewSession:
    def __init__(self,
                 settings: Settings,
                 evaluator: Optional[Evaluator] = None,
                 questions: Optional[List[str]] = None,
                 notify: Optional[NotificationLog] = None,
                 scheduler=None):
        self.s = settings
        self.notifications = notify if notify is not None else NotificationLog()
        self.coaching = CoachingSession(settings, notify=self.notifications, scheduler=scheduler)
        self.evaluator = evaluator
        self.questions: List[str] = list(questions or [])
        self.current_index = 0
        self.recording = False
        self.answers: List[AnswerRecord] = []
        self.tracker = AnswerTracker()
        self.driver: Optional[DetectionDriver] = None
        self._tasks: set = set()

    def is_recording(self) -> bool:
        return self.recording

    @property
    def current_question(self) -> Optional[str]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    # ---- detection ----
    async def start_detection(self,
                              source: FrameSource,
                              pose_detector: PoseDetector,
                              expression_detector: ExpressionDetector) -> DetectionDriver:
        if self.driver is None:
            self.driver = DetectionDriver(
                self.coaching, pose_detector, expression_detector, self.s,
                is_recording=self.is_recording,
            )
        await self.driver.start(source)
        return self.driver

    async def stop_detection(self) -> None:
        driver, self.driver = self.driver, None
        if driver is not None:
            await driver.stop()

    async def _shutdown_detection(self) -> None:
        """Stop detection, logging (not raising) the error a loop died from."""
        try:
            await self.stop_detection()
        except Exception:
            logger.exception("[interview] detection loop failed")

    # ---- answers ----
    def start_answer(self, question: Optional[str] = None) -> None:
        """Clear the accumulators and start recording the next answer."""
        if self.recording:
            return
        if question is not None:
            if self.current_index < len(self.questions):
                self.questions[self.current_index] = question
            else:
                self.questions.append(question)
        self.coaching.begin_answer()
        self.recording = True
        logger.debug(f"[interview] answer {self.current_index + 1} recording")

    def stop_answer(self, audio: bytes = b"") -> Optional[asyncio.Task]:
        """
        Stop recording, snapshot the distributions and process the answer in
        the background. Returns the processing task (None if not recording).
        """
        if not self.recording:
            return None
        self.recording = False
        dists = self.coaching.end_answer()
        payload = AnswerPayload(
            question_index=self.current_index + 1,
            question=self.current_question,
            posture_distribution=dists["posture"],
            emotion_distribution=dists["emotion"],
            audio=audio,
        )
        self.current_index += 1
        self.tracker.begin()
        task = asyncio.get_running_loop().create_task(self._process_answer(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _process_answer(self, payload: AnswerPayload) -> Optional[AnswerRecord]:
        try:
            data = await self.evaluator(payload) if self.evaluator is not None else None
            if data and data.get("skipEvaluation"):
                self.notifications(data.get("message") or "Answer skipped.", "error")
                return None
            record = AnswerRecord(
                question_index=payload.question_index,
                question=payload.question,
                posture_distribution=payload.posture_distribution,
                emotion_distribution=payload.emotion_distribution,
                evaluation=data,
            )
            self.answers.append(record)
            return record
        except Exception:
            logger.exception(f"[interview] processing answer {payload.question_index} failed")
            self.notifications("Error processing your answer.", "error")
            return None
        finally:
            self.tracker.finish()

    # ---- end / reset ----
    async def end(self, audio: bytes = b"") -> InterviewReport:
        """Stop any recording and detection, wait for all answers, build the report."""
        if self.recording:
            self.stop_answer(audio)
        await self._shutdown_detection()
        await self.tracker.wait_idle()
        self.answers.sort(key=lambda r: r.question_index)
        logger.debug(f"[interview] finished with {len(self.answers)} answers")
        return InterviewReport(answers=list(self.answers), notifications=list(self.notifications.items))

    async def reset(self) -> None:
        await self._shutdown_detection()
        for task in list(self._tasks):
            task.cancel()
        self.questions = []
        self.current_index = 0
        self.recording = False
        self.answers = []
        self.tracker = AnswerTracker()
        self.coaching.reset()
        self.notifications.clear()
