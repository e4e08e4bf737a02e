import random

import pytest

from recognition.landmarks import HandLandmarks


def _make_hand(seed=0, scale=1.0, offset=(0.0, 0.0, 0.0), wrapped=False):
    """Deterministic pseudo-random 21-keypoint hand."""
    rng = random.Random(seed)
    points = [(0.5, 0.5, 0.0)]
    points += [
        (rng.uniform(0.2, 0.8), rng.uniform(0.2, 0.8), rng.uniform(-0.1, 0.1))
        for _ in range(20)
    ]
    ox, oy, oz = offset
    points = [(x * scale + ox, y * scale + oy, z * scale + oz) for x, y, z in points]
    if wrapped:
        return HandLandmarks(landmarks=points, handedness="Right", confidence=0.99)
    return points


@pytest.fixture
def make_hand():
    return _make_hand


class FakeDetector:
    """Detector stand-in returning a fixed sample."""

    def __init__(self, sample=None, ready=True):
        self.sample = sample
        self.is_ready = ready
        self.calls = 0
        self.on_detect = None

    def detect(self, frame):
        self.calls += 1
        if self.on_detect is not None:
            self.on_detect()
        if isinstance(self.sample, Exception):
            raise self.sample
        return self.sample


@pytest.fixture
def fake_detector():
    return FakeDetector
