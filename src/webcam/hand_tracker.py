"""
MediaPipe Hand Tracker wrapper using the Tasks API.
Handles camera capture and hand landmark detection for the tutor.
"""
import logging
from pathlib import Path
from typing import Optional, Tuple
import time
import cv2
import numpy as np
import mediapipe as mp

from recognition.errors import DetectorUnavailableError
from recognition.landmarks import HandLandmarks, HAND_CONNECTIONS
from tutor.config import Config, CameraConfig, MediaPipeConfig

logger = logging.getLogger(__name__)

# MediaPipe Tasks API imports
BaseOptions = mp.tasks.BaseOptions
HandLandmarker = mp.tasks.vision.HandLandmarker
HandLandmarkerOptions = mp.tasks.vision.HandLandmarkerOptions
VisionRunningMode = mp.tasks.vision.RunningMode

# Skeleton colours (BGR)
GREEN = (94, 197, 34)
BLUE = (246, 130, 59)
YELLOW = (8, 179, 234)
RED = (68, 68, 239)
FINGER_COLORS = [
    (255, 0, 255),   # Thumb
    (0, 255, 255),   # Index
    (0, 255, 0),     # Middle
    (255, 255, 0),   # Ring
    (255, 128, 0),   # Pinky
]


def confidence_color(confidence: float) -> Tuple[int, int, int]:
    """Skeleton colour for a practice-mode confidence."""
    if confidence > 0.9:
        return GREEN
    if confidence > 0.7:
        return BLUE
    if confidence > 0.5:
        return YELLOW
    return RED


def to_hand_landmarks(result) -> Optional[HandLandmarks]:
    """Convert the first hand of a HandLandmarkerResult, or None if no hand."""
    if not result.hand_landmarks:
        return None

    hand_landmarks = result.hand_landmarks[0]
    landmarks = [
        (lm.x, lm.y, lm.z if lm.z is not None else 0.0)
        for lm in hand_landmarks
    ]

    if result.handedness:
        handedness = result.handedness[0][0]
        return HandLandmarks(
            landmarks=landmarks,
            handedness=handedness.category_name,
            confidence=handedness.score,
        )
    return HandLandmarks(landmarks=landmarks)


class HandTracker:
    """
    MediaPipe hand tracking wrapper with camera management.
    Uses the MediaPipe Tasks API (0.10+) in VIDEO mode.

    Capture and detection are separate calls so the detection loop can
    decide which frames are worth sending to the model.
    """

    # Default model path relative to project root
    DEFAULT_MODEL_PATH = Path(__file__).parent.parent.parent / "models" / "hand_landmarker.task"

    def __init__(self, config: Config, model_path: Optional[Path] = None):
        """
        Initialize hand tracker.

        Args:
            config: Tutor configuration
            model_path: Path to hand_landmarker.task model file
        """
        self._camera_config: CameraConfig = config.camera
        self._mp_config: MediaPipeConfig = config.mediapipe
        if model_path is None and self._mp_config.model_path:
            model_path = Path(self._mp_config.model_path).expanduser()
        self._model_path = model_path or self.DEFAULT_MODEL_PATH

        # Lazy initialization
        self._cap: Optional[cv2.VideoCapture] = None
        self._landmarker: Optional[HandLandmarker] = None

        # State
        self._is_running = False
        self._last_frame: Optional[np.ndarray] = None
        self._frame_count = 0
        self._start_perf: float = 0
        self._last_timestamp_ms: int = -1

    def start(self) -> bool:
        """
        Start camera capture and MediaPipe.

        Returns:
            True if started successfully, False otherwise.
        """
        if self._is_running:
            return True

        if not self._model_path.exists():
            logger.error("Model file not found: %s", self._model_path)
            logger.error("Download from: https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task")
            return False

        self._cap = cv2.VideoCapture(self._camera_config.device_id)
        if not self._cap.isOpened():
            logger.error("Could not open camera %d", self._camera_config.device_id)
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._camera_config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._camera_config.height)
        self._cap.set(cv2.CAP_PROP_FPS, self._camera_config.fps)

        options = HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self._model_path)),
            running_mode=VisionRunningMode.VIDEO,
            num_hands=self._mp_config.max_num_hands,
            min_hand_detection_confidence=self._mp_config.min_detection_confidence,
            min_tracking_confidence=self._mp_config.min_tracking_confidence,
        )

        self._landmarker = HandLandmarker.create_from_options(options)
        self._start_perf = time.perf_counter()
        self._last_timestamp_ms = -1
        self._is_running = True
        logger.info("Hand tracker started (camera %d)", self._camera_config.device_id)
        return True

    def stop(self) -> None:
        """Stop camera capture and release resources."""
        self._is_running = False

        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None

        if self._cap:
            self._cap.release()
            self._cap = None

        self._last_frame = None

    def read_frame(self) -> Optional[np.ndarray]:
        """Grab the next camera frame (BGR, mirrored if configured), or None."""
        if not self._is_running or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret:
            return None

        self._frame_count += 1
        if self._camera_config.mirror:
            frame = cv2.flip(frame, 1)
        self._last_frame = frame
        return frame

    def detect(self, frame: np.ndarray) -> Optional[HandLandmarks]:
        """
        Detect hand landmarks in a BGR frame.

        Raises:
            DetectorUnavailableError: tracker not started
        """
        if not self._is_running or self._landmarker is None:
            raise DetectorUnavailableError("Hand tracker is not running")

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)

        # Strictly monotonic timestamp required by VIDEO mode
        timestamp_ms = int((time.perf_counter() - self._start_perf) * 1000)
        if timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = timestamp_ms

        return to_hand_landmarks(self._landmarker.detect_for_video(mp_image, timestamp_ms))

    def get_frame_with_landmarks(
        self,
        landmarks: Optional[HandLandmarks] = None,
        confidence: float = 0.0,
        training: bool = True,
    ) -> Optional[np.ndarray]:
        """
        Get last frame with the hand skeleton drawn on it.

        Args:
            landmarks: If provided, draw the skeleton.
            confidence: Current prediction confidence (practice colouring).
            training: Multicolour fingers while training, confidence colour otherwise.

        Returns:
            Annotated frame, or None if no frame available.
        """
        if self._last_frame is None:
            return None

        frame = self._last_frame.copy()
        if landmarks is None:
            return frame

        h, w = frame.shape[:2]
        points = [(int(x * w), int(y * h)) for x, y, _ in landmarks.landmarks]
        solid = None if training else confidence_color(confidence)

        for start_idx, end_idx in HAND_CONNECTIONS:
            color = solid or FINGER_COLORS[min((max(start_idx, end_idx) - 1) // 4, 4)]
            cv2.line(frame, points[start_idx], points[end_idx], color, 2)
        for i, pos in enumerate(points):
            color = solid or (FINGER_COLORS[(i - 1) // 4] if i > 0 else (255, 255, 255))
            cv2.circle(frame, pos, 5, color, -1)

        if not training:
            self._draw_confidence_bar(frame, confidence)
        return frame

    @staticmethod
    def _draw_confidence_bar(frame: np.ndarray, confidence: float,
                             bar_width: int = 200, bar_height: int = 30) -> None:
        w = frame.shape[1]
        x, y = w - bar_width - 20, 20
        cv2.rectangle(frame, (x, y), (x + bar_width, y + bar_height), (40, 40, 40), -1)
        fill = int(bar_width * max(0.0, min(1.0, confidence)))
        cv2.rectangle(frame, (x, y), (x + fill, y + bar_height), confidence_color(confidence), -1)
        cv2.putText(
            frame, f"{confidence * 100:.0f}%", (x + 8, y + bar_height - 8),
            cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1
        )

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def is_ready(self) -> bool:
        return self._is_running and self._landmarker is not None

    @property
    def frame_count(self) -> int:
        return self._frame_count
