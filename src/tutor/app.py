"""
Tutor application facade.

Owns the classifier, session and model store, and is the only mutation
path the UI uses.
"""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from recognition.classifier import DetectionResult, OnlineClassifier
from recognition.errors import CorruptDataError, StorageError
from recognition.geometry import normalize
from recognition.landmarks import HandSample
from recognition.storage import (
    LocalModelStore,
    export_to_file,
    import_from_file,
    latest_export,
    load_classifier,
    save_classifier,
)

from .config import Config
from .scheduler import DetectionScheduler, LatestCell
from .session import LearningMode, SessionState, SessionStateMachine

logger = logging.getLogger(__name__)


class TutorApp:
    """
    Command surface for training, evaluation and persistence.

    Correct predictions are committed with a stability window: once the
    session has reported `hold_frames` correct predictions in a row the
    app calls mark_correct() and, in quiz and alphabet-run, moves on to
    the next letter. A held sign is committed once; the prediction has to
    turn incorrect, or the target change, before it can count again.
    """

    def __init__(
        self,
        config: Config,
        classifier: Optional[OnlineClassifier] = None,
        session: Optional[SessionStateMachine] = None,
        store: Optional[LocalModelStore] = None,
    ):
        self._config = config
        self.classifier = classifier or OnlineClassifier(k=config.classifier.k)
        self.session = session or SessionStateMachine(
            correct_threshold=config.session.correct_threshold,
        )
        self.store = store or LocalModelStore(
            Path(config.storage.data_dir), config.storage.storage_key,
        )
        self.latest = LatestCell()

        self._hold_frames = config.session.hold_frames
        self._correct_streak = 0
        self._awaiting_release = False
        self._last_target = self.session.state.target_letter
        self.session.subscribe(self._on_session_change)

    # --- Startup --------------------------------------------------------

    def load_saved(self) -> int:
        """
        Restore the stored model. Returns the number of samples loaded.

        An unreadable or corrupt store is logged and leaves the classifier
        empty, so the tutor still starts.
        """
        try:
            found = load_classifier(self.classifier, self.store)
        except (CorruptDataError, StorageError) as e:
            logger.warning("Ignoring saved classifier: %s", e)
            return 0
        if not found:
            logger.info("No saved classifier found")
            return 0
        total = self.classifier.get_total_samples()
        logger.info("Loaded classifier with %d samples", total)
        return total

    def create_scheduler(self, detector, **kwargs) -> DetectionScheduler:
        detection = self._config.detection
        kwargs.setdefault('on_result', self.handle_result)
        return DetectionScheduler(
            detector,
            self.classifier,
            self.session,
            latest=self.latest,
            frame_decimation=detection.frame_decimation,
            noise_gate=detection.noise_gate,
            status_log_interval=detection.status_log_interval,
            **kwargs,
        )

    # --- Training -------------------------------------------------------

    def add_example(self, sample: HandSample, label: str) -> None:
        self.classifier.add_example(normalize(sample), label)

    def capture_latest(self, label: str) -> bool:
        """
        Train `label` from the most recent detected hand.

        Returns:
            False if no hand is currently detected.
        """
        sample = self.latest.get()
        if sample is None:
            logger.warning("No hand detected. Position your hand in view.")
            return False
        self.add_example(sample, label)
        return True

    def clear_class(self, label: str) -> None:
        self.classifier.clear_class(label)

    def reset_all(self) -> None:
        self.classifier.reset()

    def get_sample_count(self, label: str) -> int:
        return self.classifier.get_sample_count(label)

    def get_total_samples(self) -> int:
        return self.classifier.get_total_samples()

    def ready_letters(self) -> List[str]:
        return self.classifier.ready_letters(self._config.classifier.min_samples_per_letter)

    @property
    def is_trained(self) -> bool:
        return len(self.ready_letters()) >= self._config.classifier.min_ready_letters

    def can_start_practice(self) -> Tuple[bool, Optional[str]]:
        """
        Check whether training can be left.

        Returns:
            (allowed, message) - message is an error when not allowed, a
            warning when allowed with too few samples, else None.
        """
        total = self.get_total_samples()
        if total == 0:
            return False, "Please collect some training samples first"
        if total < self._config.classifier.recommended_total:
            return True, (
                f"Recommended: {self._config.classifier.min_samples_per_letter}+ "
                "samples per letter for best results"
            )
        return True, None

    # --- Evaluation -----------------------------------------------------

    def classify(self, sample: HandSample) -> Optional[DetectionResult]:
        return self.classifier.classify(normalize(sample))

    def set_mode(self, mode) -> None:
        self.session.set_mode(mode)

    def set_target_letter(self, letter: str) -> None:
        self.session.set_target_letter(letter)

    def next_letter(self) -> None:
        self.session.next_letter()

    def reset_session(self) -> None:
        self.session.reset_session()

    @property
    def state(self) -> SessionState:
        return self.session.state

    def handle_result(self, result: DetectionResult) -> None:
        """Count forwarded predictions toward the stability window."""
        state = self.session.state
        if not state.is_correct:
            self._correct_streak = 0
            self._awaiting_release = False
            return

        # A held sign commits once; it must drop or the target change first
        if self._awaiting_release:
            return

        self._correct_streak += 1
        if self._correct_streak < self._hold_frames:
            return

        self._correct_streak = 0
        self._awaiting_release = True
        logger.info("Committed correct sign %s (%.2f)", state.target_letter, result.confidence)
        self.session.mark_correct()
        if state.mode in (LearningMode.QUIZ, LearningMode.ALPHABET_RUN):
            self.session.next_letter()

    def _on_session_change(self, state: SessionState) -> None:
        # A new target starts a new window
        if state.target_letter != self._last_target or not state.is_correct:
            self._correct_streak = 0
            self._awaiting_release = False
        self._last_target = state.target_letter

    # --- Persistence ----------------------------------------------------

    def save(self) -> None:
        save_classifier(self.classifier, self.store)

    def export_to_file(self, directory: Optional[Path] = None) -> Path:
        """Export to a timestamped file and also save locally."""
        path = export_to_file(self.classifier, Path(directory or self._config.storage.export_dir))
        self.save()
        return path

    def import_from_file(self, payload: bytes) -> int:
        return import_from_file(self.classifier, payload, self.store)

    def import_latest_export(self, directory: Optional[Path] = None) -> Optional[Tuple[Path, int]]:
        """
        Import the newest export file from `directory` (default: the export dir).

        Returns:
            (path, samples imported), or None if there is no export file.
        """
        path = latest_export(Path(directory or self._config.storage.export_dir))
        if path is None:
            return None
        return path, self.import_from_file(path.read_bytes())

    def clear_stored(self) -> None:
        self.store.clear()
