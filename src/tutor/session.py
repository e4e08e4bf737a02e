"""
Session state machine for practice, quiz and alphabet-run modes.
"""
import logging
import random
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional

from recognition.errors import InvalidLabelError
from recognition.landmarks import ALPHABET, is_letter

logger = logging.getLogger(__name__)


class LearningMode(str, Enum):
    """Evaluation modes. Training happens outside the state machine."""
    PRACTICE = "practice"
    QUIZ = "quiz"
    ALPHABET_RUN = "alphabet-run"


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the session, handed to observers on every transition."""
    mode: LearningMode = LearningMode.PRACTICE
    target_letter: str = "A"
    current_prediction: Optional[str] = None
    current_confidence: float = 0.0
    is_correct: bool = False
    feedback_message: Optional[str] = None
    correct_count: int = 0
    total_attempts: int = 0
    alphabet_progress: int = 0
    start_time: Optional[float] = None


SessionListener = Callable[[SessionState], None]


class SessionStateMachine:
    """
    Tracks the target letter, latest prediction and progress counters.

    Counters only move through mark_correct(): a prediction turning correct
    does not count by itself, the caller decides when to commit it.
    """

    CORRECT_MESSAGE = "Correct!"

    def __init__(
        self,
        correct_threshold: float = 0.9,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._correct_threshold = correct_threshold
        self._rng = rng or random.Random()
        self._clock = clock
        self._state = SessionState()
        self._listeners: List[SessionListener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def elapsed(self) -> Optional[float]:
        """Seconds since the alphabet run started, None before the first advance."""
        if self._state.start_time is None:
            return None
        return self._clock() - self._state.start_time

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _set(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)

    def _cleared(self, **changes) -> dict:
        changes.update(
            current_prediction=None,
            current_confidence=0.0,
            is_correct=False,
            feedback_message=None,
        )
        return changes

    def set_mode(self, mode) -> None:
        mode = LearningMode(mode)
        logger.info("Session mode: %s", mode.value)
        self._set(mode=mode, correct_count=0, total_attempts=0)

    def set_target_letter(self, letter: str) -> None:
        if not is_letter(letter):
            raise InvalidLabelError(f"Invalid letter: {letter!r}")
        self._set(**self._cleared(target_letter=letter))

    def update_prediction(self, label: str, confidence: float) -> None:
        is_correct = label == self._state.target_letter and confidence > self._correct_threshold
        self._set(
            current_prediction=label,
            current_confidence=confidence,
            is_correct=is_correct,
            feedback_message=self.CORRECT_MESSAGE if is_correct else None,
        )

    def mark_correct(self) -> None:
        self._set(
            correct_count=self._state.correct_count + 1,
            total_attempts=self._state.total_attempts + 1,
        )

    def next_letter(self) -> None:
        state = self._state

        if state.mode is LearningMode.ALPHABET_RUN:
            progress = state.alphabet_progress + 1
            if progress >= len(ALPHABET):
                return  # Run finished
            start_time = self._clock() if state.alphabet_progress == 0 else state.start_time
            self._set(**self._cleared(
                alphabet_progress=progress,
                target_letter=ALPHABET[progress],
                start_time=start_time,
            ))

        elif state.mode is LearningMode.QUIZ:
            # Repeats of the current letter are allowed
            self._set(**self._cleared(target_letter=self._rng.choice(ALPHABET)))

    def reset_session(self) -> None:
        self._set(**self._cleared(
            correct_count=0,
            total_attempts=0,
            alphabet_progress=0,
            start_time=None,
        ))
