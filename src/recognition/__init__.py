"""
Sign Language Tutor - Recognition Module

Hand pose normalization, online k-NN classification and model persistence.
"""
from .errors import (
    TutorError,
    InvalidSampleError,
    InvalidLabelError,
    CorruptDataError,
    StorageError,
    DetectorUnavailableError,
)
from .landmarks import ALPHABET, HandLandmarks, HAND_CONNECTIONS
from .geometry import normalize
from .classifier import OnlineClassifier, DetectionResult
from .storage import LocalModelStore, serialize, deserialize

__all__ = [
    'TutorError',
    'InvalidSampleError',
    'InvalidLabelError',
    'CorruptDataError',
    'StorageError',
    'DetectorUnavailableError',
    'ALPHABET',
    'HandLandmarks',
    'HAND_CONNECTIONS',
    'normalize',
    'OnlineClassifier',
    'DetectionResult',
    'LocalModelStore',
    'serialize',
    'deserialize',
]
