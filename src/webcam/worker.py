"""
Background worker for hand tracking and sign classification.
Runs in a separate QThread to avoid blocking the UI.
"""
import logging
import time
from typing import Optional
from PyQt5.QtCore import QObject, pyqtSignal

from tutor.app import TutorApp
from tutor.config import Config
from tutor.scheduler import DetectionScheduler

from .hand_tracker import HandTracker

logger = logging.getLogger(__name__)


class TutorWorker(QObject):
    """
    Worker class that feeds camera frames through the detection scheduler.
    Emits signals for UI updates.
    """
    # Signals
    sample_updated = pyqtSignal(object)   # Emits HandLandmarks (or None)
    prediction_ready = pyqtSignal(object)  # Emits DetectionResult
    hand_lost = pyqtSignal()
    frame_ready = pyqtSignal(object)  # Emits numpy array (BGR frame with skeleton)
    error = pyqtSignal(str)

    def __init__(self, config: Config, app: TutorApp, tracker: Optional[HandTracker] = None, parent=None):
        super().__init__(parent)
        self._config = config
        self._app = app
        self._tracker = tracker
        self._scheduler: Optional[DetectionScheduler] = None
        self._is_running = False
        self._had_hand = False
        self._training = False

    @property
    def scheduler(self) -> Optional[DetectionScheduler]:
        return self._scheduler

    def set_training(self, training: bool) -> None:
        self._training = training
        if self._scheduler is not None:
            self._scheduler.training = training

    def _handle_sample(self, sample) -> None:
        self.sample_updated.emit(sample)
        if sample is None and self._had_hand:
            self.hand_lost.emit()
        self._had_hand = sample is not None

    def start_process(self):
        """Main processing loop. Runs in worker thread, paced by the camera."""
        if self._tracker is None:
            self._tracker = HandTracker(self._config)

        if not self._tracker.start():
            self.error.emit("Could not open camera")
            return

        self._scheduler = self._app.create_scheduler(
            self._tracker,
            on_sample=self._handle_sample,
            on_result=self._handle_result,
        )
        self._scheduler.training = self._training
        self._is_running = True

        frame_interval = 1.0 / 5  # Low FPS for skeleton preview
        last_frame_time = 0.0

        try:
            while self._is_running:
                frame = self._tracker.read_frame()
                if frame is None:
                    # Camera not delivering yet
                    time.sleep(0.01)
                    continue

                self._scheduler.tick(frame)

                now = time.perf_counter()
                if self._config.ui.debug_overlay and now - last_frame_time >= frame_interval:
                    annotated = self._tracker.get_frame_with_landmarks(
                        self._scheduler.latest.get(),
                        confidence=self._app.state.current_confidence,
                        training=self._scheduler.training,
                    )
                    if annotated is not None:
                        self.frame_ready.emit(annotated)
                    last_frame_time = now

        except Exception as e:
            logger.exception("Worker exception")
            self.error.emit(f"Worker Exception: {str(e)}")
        finally:
            self._is_running = False
            self._scheduler.stop()
            self._tracker.stop()

    def _handle_result(self, result) -> None:
        self._app.handle_result(result)
        self.prediction_ready.emit(result)

    def stop_process(self):
        """Signal the loop to stop and release resources in worker thread."""
        self._is_running = False
        if self._scheduler is not None:
            self._scheduler.stop()
