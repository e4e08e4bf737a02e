"""
Hand landmark types shared by the detector and the recognition core.
"""
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

import string

# Closed label set
ALPHABET = string.ascii_uppercase

NUM_KEYPOINTS = 21
FEATURE_SIZE = NUM_KEYPOINTS * 3

Keypoint = Tuple[float, float, float]


@dataclass
class HandLandmarks:
    """
    One detected hand.
    
    Attributes:
        landmarks: List of 21 (x, y, z) tuples in detector coordinates
        handedness: 'Left' or 'Right'
        confidence: Detection confidence 0-1
    """
    landmarks: List[Keypoint]
    handedness: str = "Unknown"
    confidence: float = 1.0
    
    # MediaPipe landmark indices
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20
    
    def __len__(self) -> int:
        return len(self.landmarks)


HandSample = Union[HandLandmarks, Sequence]


# Hand connections for drawing (same as MediaPipe's HAND_CONNECTIONS)
HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),      # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),      # Index
    (0, 9), (9, 10), (10, 11), (11, 12), # Middle
    (0, 13), (13, 14), (14, 15), (15, 16), # Ring
    (0, 17), (17, 18), (18, 19), (19, 20), # Pinky
    (5, 9), (9, 13), (13, 17),           # Palm
]


def keypoints_of(sample: HandSample) -> Sequence:
    """Unwrap a HandLandmarks into its raw keypoint sequence."""
    if isinstance(sample, HandLandmarks):
        return sample.landmarks
    return sample


def is_letter(label) -> bool:
    return isinstance(label, str) and len(label) == 1 and label in ALPHABET
