"""
Position and scale invariant encoding of hand poses.

A pose is encoded relative to the wrist and divided by the wrist to
middle-finger-MCP distance, so the same sign made closer to or further
from the camera maps to the same 63-float vector.
"""
import math
from typing import Sequence, Tuple

from .errors import InvalidSampleError
from .landmarks import HandLandmarks, HandSample, NUM_KEYPOINTS, keypoints_of

FeatureVector = Tuple[float, ...]


def _coords(point) -> Tuple[float, float, float]:
    """Read (x, y, z) from a tuple, mapping or landmark object. Missing z is 0."""
    if isinstance(point, dict):
        x, y, z = point.get('x'), point.get('y'), point.get('z')
    elif isinstance(point, (tuple, list)):
        if len(point) < 2:
            raise InvalidSampleError(f"Keypoint needs at least x and y, got {point!r}")
        x, y = point[0], point[1]
        z = point[2] if len(point) > 2 else None
    else:
        x, y, z = getattr(point, 'x', None), getattr(point, 'y', None), getattr(point, 'z', None)
    
    if x is None or y is None:
        raise InvalidSampleError(f"Keypoint is missing coordinates: {point!r}")
    return float(x), float(y), float(z or 0.0)


def distance_3d(a: Sequence[float], b: Sequence[float]) -> float:
    return math.sqrt((b[0] - a[0])**2 + (b[1] - a[1])**2 + (b[2] - a[2])**2)


def normalize(sample: HandSample) -> FeatureVector:
    """
    Encode a 21-keypoint hand sample as a 63-float feature vector.
    
    Each keypoint becomes ((x - wrist.x) / d, (y - wrist.y) / d, (z - wrist.z) / d)
    where d is the wrist to middle-finger-MCP distance. When that distance is
    exactly zero, d = 1 and the output is translated but not scaled.
    
    Raises:
        InvalidSampleError: sample does not contain exactly 21 keypoints
    """
    points = keypoints_of(sample)
    if points is None or len(points) != NUM_KEYPOINTS:
        count = 0 if points is None else len(points)
        raise InvalidSampleError(f"Expected {NUM_KEYPOINTS} keypoints, got {count}")
    
    coords = [_coords(p) for p in points]
    wx, wy, wz = coords[HandLandmarks.WRIST]
    
    ref_distance = distance_3d(coords[HandLandmarks.WRIST], coords[HandLandmarks.MIDDLE_MCP])
    d = ref_distance if ref_distance > 0 else 1.0
    
    features = []
    for x, y, z in coords:
        features.extend(((x - wx) / d, (y - wy) / d, (z - wz) / d))
    return tuple(features)
