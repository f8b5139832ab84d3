"""
Position Tracker
Stateful wrapper around the position classifier: keeps the current
position and a debounced log of recent position changes.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, List, Optional

from dashboard import config
from dashboard.data.reading import Reading
from dashboard.processing.position_classifier import ClassificationResult, Position, classify
from dashboard.processing.timers import Timer, TimerQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionLogEntry:
    position: Position
    confidence: int
    timestamp: datetime


class PositionTracker:
    """
    Debounced classification log.

    Every new classification restarts the debounce timer with the latest
    result. When the timer fires the result is logged only if the position
    changed or the confidence moved by more than 20 points, so a stream
    of near-identical readings does not flood the log.
    """

    def __init__(self, timers: TimerQueue,
                 debounce_seconds: float = config.DEBOUNCE_SECONDS,
                 history_size: int = config.POSITION_HISTORY_SIZE,
                 now: Callable[[], datetime] = datetime.now):
        """
        Args:
            timers: Loop timer queue used for the debounce timer
            debounce_seconds: Quiet period before a result is considered
            history_size: Max log entries kept (oldest evicted)
            now: Wall clock used to timestamp log entries
        """
        self.timers = timers
        self.debounce_seconds = debounce_seconds
        self.now = now

        self.current: Optional[ClassificationResult] = None
        self.history: Deque[PositionLogEntry] = deque(maxlen=history_size)
        self._pending_timer: Optional[Timer] = None

    def observe(self, reading: Reading) -> ClassificationResult:
        """Classify one reading and feed it to the debounced log"""
        result = classify(reading.rh, reading.lh, reading.rt, reading.lt, reading.total)
        self.submit(result)
        return result

    def submit(self, result: ClassificationResult):
        self.current = result
        if self._pending_timer is not None:
            self._pending_timer.cancel()
        self._pending_timer = self.timers.call_later(
            self.debounce_seconds, self._commit, result
        )

    def _commit(self, result: ClassificationResult):
        self._pending_timer = None

        if self.history:
            last = self.history[-1]
            same_position = last.position == result.position
            confidence_shift = abs(last.confidence - result.confidence)
            if same_position and confidence_shift <= config.CONFIDENCE_CHANGE_THRESHOLD:
                return

        self.history.append(PositionLogEntry(result.position, result.confidence, self.now()))
        logger.info(f"Position: {result.position.value} ({result.confidence}% confidence)")

    @property
    def current_position(self) -> Optional[Position]:
        return self.current.position if self.current else None

    @property
    def current_confidence(self) -> int:
        return self.current.confidence if self.current else 0

    @property
    def has_pending(self) -> bool:
        return self._pending_timer is not None and self._pending_timer.active

    def recent(self) -> List[PositionLogEntry]:
        """Log entries, newest first"""
        return list(reversed(self.history))

    def reset(self):
        if self._pending_timer is not None:
            self._pending_timer.cancel()
        self._pending_timer = None
        self.current = None
        self.history.clear()
        logger.info("PositionTracker reset")
