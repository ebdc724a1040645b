"""
Sustained-condition alerting.

One SustainedConditionAlert watches one adverse condition (bad posture,
negative emotion). It arms a timer on the first adverse observation, fires a
single coaching notification if the condition still holds when the timer
elapses, and forgets everything on the first good observation.
"""
from __future__ import annotations
import asyncio
import heapq
import itertools
import logging
from enum import Enum
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with asyncio's call_later signature."""
    def call_later(self, delay: float, callback: Callable[..., None], *args) -> TimerHandle: ...


class AlertState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    ALERTED = "alerted"


class SustainedConditionAlert:
    """Timer-based one-shot alert for a condition that persists past a threshold."""
    def __init__(self,
                 name: str,
                 threshold_ms: float,
                 message: str,
                 notify: Notify,
                 recheck: Optional[Callable[[], bool]] = None,
                 severity: str = "error",
                 scheduler: Optional[Scheduler] = None):
        self.name = name
        self.threshold_ms = float(threshold_ms)
        self.message = message
        self.severity = severity
        self._notify = notify
        self._recheck = recheck
        self._scheduler = scheduler
        self._timer: Optional[TimerHandle] = None
        self._alerted = False
        self._latest = False

    @property
    def state(self) -> AlertState:
        if self._alerted:
            return AlertState.ALERTED
        if self._timer is not None:
            return AlertState.PENDING
        return AlertState.IDLE

    def observe(self, adverse: bool) -> AlertState:
        """
        Feed one observation.
        - adverse while IDLE: arm the timer (-> PENDING)
        - adverse while PENDING/ALERTED: nothing
        - not adverse: cancel timer and clear the alerted flag (-> IDLE)
        """
        self._latest = bool(adverse)
        if adverse:
            if self._timer is None and not self._alerted:
                self._arm()
        else:
            self.reset()
        return self.state

    def reset(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.debug(f"[alert] {self.name}: episode ended before threshold")
        self._alerted = False

    def _arm(self) -> None:
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._timer = scheduler.call_later(self.threshold_ms / 1000.0, self._elapse)
        logger.debug(f"[alert] {self.name}: armed for {self.threshold_ms:.0f} ms")

    def _elapse(self) -> None:
        self._timer = None
        still_adverse = self._recheck() if self._recheck is not None else self._latest
        if not still_adverse:
            logger.debug(f"[alert] {self.name}: recovered at threshold; no alert")
            return
        self._alerted = True
        logger.info(f"[alert] {self.name}: condition sustained; notifying")
        self._notify(self.message, self.severity)


class _ManualTimer:
    def __init__(self, when: float, callback: Callable[..., None], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """
    Deterministic Scheduler driven by advance(); used for replays and tests.
    Timers due at the same instant fire in the order they were armed.
    """
    def __init__(self, start: float = 0.0):
        self.now = float(start)
        self._heap: list = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[..., None], *args) -> _ManualTimer:
        timer = _ManualTimer(self.now + max(0.0, float(delay)), callback, args)
        heapq.heappush(self._heap, (timer.when, next(self._seq), timer))
        return timer

    def advance(self, seconds: float) -> None:
        self.advance_to(self.now + float(seconds))

    def advance_to(self, when: float) -> None:
        while self._heap and self._heap[0][0] <= when:
            due, _, timer = heapq.heappop(self._heap)
            self.now = max(self.now, due)
            if not timer.cancelled:
                timer.callback(*timer.args)
        self.now = max(self.now, float(when))
