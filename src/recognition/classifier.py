"""
Incrementally trainable k-nearest-neighbor classifier over hand feature vectors.
"""
import logging
import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .errors import InvalidLabelError, InvalidSampleError
from .geometry import FeatureVector
from .landmarks import ALPHABET, FEATURE_SIZE, is_letter

logger = logging.getLogger(__name__)

ClassifierModel = Dict[str, List[FeatureVector]]


@dataclass(frozen=True)
class DetectionResult:
    """Winning label and its share of the k nearest neighbors."""
    label: str
    confidence: float


def _check_label(label) -> str:
    if not is_letter(label):
        raise InvalidLabelError(f"Invalid letter: {label!r}")
    return label


def _as_vector(vector: Sequence[float]) -> FeatureVector:
    vec = tuple(float(v) for v in vector)
    if len(vec) != FEATURE_SIZE:
        raise InvalidSampleError(f"Expected {FEATURE_SIZE} features, got {len(vec)}")
    return vec


class OnlineClassifier:
    """
    Nearest-neighbor classifier that learns one example at a time.

    Examples are kept per letter in insertion order. Classification votes
    among the k closest stored examples (Euclidean distance); the reported
    confidence is the winner's vote share, so k=1 always reports 1.0.

    All model access goes through one lock: the webcam worker classifies
    on its own thread while capture commands add examples from the UI.
    """

    def __init__(self, k: int = 1):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self._k = k
        self._examples: ClassifierModel = {}
        self._lock = threading.RLock()

        # Stacked (N, 63) matrix and parallel label codes, rebuilt lazily
        self._matrix: Optional[np.ndarray] = None
        self._label_codes: Optional[np.ndarray] = None

    @property
    def k(self) -> int:
        return self._k

    def add_example(self, vector: Sequence[float], label: str) -> None:
        """Append a feature vector to a letter's examples."""
        _check_label(label)
        vec = _as_vector(vector)
        with self._lock:
            self._examples.setdefault(label, []).append(vec)
            self._matrix = None
        logger.debug("Added example for %s (%d total)", label, self.get_sample_count(label))

    def classify(self, vector: Sequence[float]) -> Optional[DetectionResult]:
        """
        Classify a feature vector.

        Returns:
            DetectionResult, or None when no examples have been added.
        """
        query = np.asarray(_as_vector(vector), dtype=np.float64)

        with self._lock:
            if self._matrix is None:
                self._rebuild()
            matrix, codes = self._matrix, self._label_codes

        if matrix is None or len(matrix) == 0:
            return None

        distances = np.linalg.norm(matrix - query, axis=1)
        k = min(self._k, len(distances))

        # Sort by distance, then alphabetically by label for exact ties
        order = np.lexsort((codes, distances))[:k]

        votes: Counter = Counter()
        best_distance: Dict[int, float] = {}
        for idx in order:
            code = int(codes[idx])
            votes[code] += 1
            best_distance.setdefault(code, float(distances[idx]))

        winner = min(votes, key=lambda c: (-votes[c], best_distance[c], c))
        return DetectionResult(label=ALPHABET[winner], confidence=votes[winner] / k)

    def clear_class(self, label: str) -> None:
        _check_label(label)
        with self._lock:
            if self._examples.pop(label, None):
                self._matrix = None

    def reset(self) -> None:
        with self._lock:
            self._examples = {}
            self._matrix = None

    def get_sample_count(self, label: str) -> int:
        with self._lock:
            return len(self._examples.get(label, ()))

    def get_total_samples(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._examples.values())

    def get_class_counts(self) -> Dict[str, int]:
        """Per-letter example counts, letters without examples omitted."""
        with self._lock:
            return {label: len(v) for label, v in self._examples.items() if v}

    def ready_letters(self, min_samples: int = 10) -> List[str]:
        """Letters with at least `min_samples` examples, alphabetical."""
        counts = self.get_class_counts()
        return [letter for letter in ALPHABET if counts.get(letter, 0) >= min_samples]

    def get_dataset(self) -> ClassifierModel:
        """Copy of the full example set, letters in alphabetical order."""
        with self._lock:
            return {
                label: list(self._examples[label])
                for label in sorted(self._examples)
                if self._examples[label]
            }

    def set_dataset(self, dataset: Mapping[str, Sequence[Sequence[float]]]) -> None:
        """
        Replace the whole model.

        Every label and vector is validated before anything changes, so a
        bad dataset leaves the current model intact.
        """
        replacement: ClassifierModel = {}
        for label, vectors in dataset.items():
            _check_label(label)
            converted = [_as_vector(v) for v in vectors]
            if converted:
                replacement[label] = converted

        with self._lock:
            self._examples = replacement
            self._matrix = None
        logger.info("Classifier dataset replaced (%d samples)", self.get_total_samples())

    def _rebuild(self) -> None:
        """Stack all examples into the distance matrix. Caller holds the lock."""
        rows: List[FeatureVector] = []
        codes: List[int] = []
        for label, vectors in self._examples.items():
            code = ALPHABET.index(label)
            rows.extend(vectors)
            codes.extend([code] * len(vectors))

        if rows:
            self._matrix = np.asarray(rows, dtype=np.float64)
        else:
            self._matrix = np.empty((0, FEATURE_SIZE), dtype=np.float64)
        self._label_codes = np.asarray(codes, dtype=np.int64)
