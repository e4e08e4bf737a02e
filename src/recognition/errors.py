"""
Error taxonomy for the recognition pipeline.
"""


class TutorError(Exception):
    """Base class for all tutor errors."""


class InvalidSampleError(TutorError):
    """Hand sample does not have exactly 21 keypoints (or vector not 63 floats)."""


class InvalidLabelError(TutorError):
    """Label is not one of the uppercase letters A-Z."""


class CorruptDataError(TutorError):
    """Persisted or imported model data failed shape/structure checks."""


class StorageError(TutorError):
    """Local model storage could not be read or written."""


class DetectorUnavailableError(TutorError):
    """Hand landmark detector is not running or failed to answer."""
