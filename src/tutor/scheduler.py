"""
Frame-paced detection and classification loop.

Invoked once per available video frame. Only every other frame is sent to
the hand detector; in practice modes the detected hand is classified and
confident results are forwarded to the session.
"""
import logging
import threading
from typing import Callable, Generic, Iterable, Optional, TypeVar

from recognition.classifier import DetectionResult, OnlineClassifier
from recognition.geometry import normalize
from recognition.landmarks import HandLandmarks

from .session import SessionStateMachine

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LatestCell(Generic[T]):
    """
    Single-slot shared value. Writes overwrite, reads return the last write.

    Bridges the detection loop and capture commands running on other threads.
    """

    def __init__(self, value: Optional[T] = None):
        self._value = value
        self._lock = threading.Lock()

    def set(self, value: Optional[T]) -> None:
        with self._lock:
            self._value = value

    def get(self) -> Optional[T]:
        with self._lock:
            return self._value


class DetectionScheduler:
    """
    Cooperative per-frame control loop.

    The detector must expose `is_ready` and `detect(frame) -> HandLandmarks | None`
    (see webcam.HandTracker). At most one tick runs at a time; a tick that
    arrives while another is still working is skipped.
    """

    def __init__(
        self,
        detector,
        classifier: Optional[OnlineClassifier],
        session: SessionStateMachine,
        latest: Optional[LatestCell] = None,
        frame_decimation: int = 2,
        noise_gate: float = 0.5,
        status_log_interval: int = 60,
        on_sample: Optional[Callable[[Optional[HandLandmarks]], None]] = None,
        on_result: Optional[Callable[[DetectionResult], None]] = None,
    ):
        self._detector = detector
        self._classifier = classifier
        self._session = session
        self._latest = latest if latest is not None else LatestCell()
        self._frame_decimation = max(1, frame_decimation)
        self._noise_gate = noise_gate
        self._status_log_interval = status_log_interval
        self._on_sample = on_sample
        self._on_result = on_result

        self.training = False
        self._tick_count = 0
        self._stopped = False
        self._tick_lock = threading.Lock()

    @property
    def latest(self) -> LatestCell:
        return self._latest

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Stop scheduling. A detector call already in flight is discarded."""
        if not self._stopped:
            logger.info("Stopping detection loop")
        self._stopped = True

    def tick(self, frame) -> Optional[DetectionResult]:
        """
        Run one frame through the loop.

        Returns:
            The forwarded DetectionResult, or None when the tick was skipped,
            no hand was found, the model is empty or the result was gated.
        """
        if self._stopped:
            return None
        if not self._tick_lock.acquire(blocking=False):
            return None
        try:
            return self._tick(frame)
        except Exception:
            # One bad frame must not end the loop
            logger.exception("Detection error")
            return None
        finally:
            self._tick_lock.release()

    def _tick(self, frame) -> Optional[DetectionResult]:
        if frame is None or not getattr(self._detector, 'is_ready', False):
            return None

        self._tick_count += 1
        if self._tick_count % self._frame_decimation != 0:
            return None

        sample = self._detector.detect(frame)
        if self._stopped:
            return None

        self._latest.set(sample)
        if self._on_sample is not None:
            self._on_sample(sample)

        if self._status_log_interval and self._tick_count % self._status_log_interval == 0:
            logger.debug(
                "Detection status: hand=%s keypoints=%d",
                sample is not None, len(sample) if sample is not None else 0,
            )

        if self.training or sample is None or self._classifier is None:
            return None

        result = self._classifier.classify(normalize(sample))
        if result is None or result.confidence <= self._noise_gate:
            return None

        self._session.update_prediction(result.label, result.confidence)
        if self._on_result is not None:
            self._on_result(result)
        return result

    def run(self, frames: Iterable) -> None:
        """Tick over `frames` until the iterable ends or stop() is called."""
        for frame in frames:
            if self._stopped:
                break
            self.tick(frame)
