import math
from types import SimpleNamespace

import pytest

from recognition.errors import InvalidSampleError
from recognition.geometry import normalize, distance_3d


def test_output_has_63_features(make_hand):
    for seed in range(5):
        assert len(normalize(make_hand(seed))) == 63


def test_wrist_is_origin_and_reference_is_unit(make_hand):
    vector = normalize(make_hand(3))
    assert vector[0:3] == (0.0, 0.0, 0.0)
    middle_mcp = vector[27:30]
    assert math.sqrt(sum(v * v for v in middle_mcp)) == pytest.approx(1.0)


def test_scale_and_translation_invariance(make_hand):
    near = normalize(make_hand(7))
    far = normalize(make_hand(7, scale=0.4, offset=(0.1, -0.2, 0.05)))
    assert far == pytest.approx(near, abs=1e-9)


def test_degenerate_reference_falls_back_to_translation():
    points = [(0.1 * i, 0.2 * i, 0.0) for i in range(21)]
    points[9] = points[0]  # wrist and middle MCP coincide
    vector = normalize(points)
    assert len(vector) == 63
    # Unscaled offsets from the wrist
    assert vector[3:6] == pytest.approx((0.1, 0.2, 0.0))
    assert vector[60:63] == pytest.approx((2.0, 4.0, 0.0))


def test_missing_z_defaults_to_zero(make_hand):
    flat = [(x, y) for x, y, _ in make_hand(1)]
    vector = normalize(flat)
    assert all(vector[i] == 0.0 for i in range(2, 63, 3))


def test_accepts_landmark_objects_and_mappings(make_hand):
    points = make_hand(2)
    expected = normalize(points)

    objects = [SimpleNamespace(x=x, y=y, z=z) for x, y, z in points]
    mappings = [{'x': x, 'y': y, 'z': z} for x, y, z in points]
    wrapped = make_hand(2, wrapped=True)

    assert normalize(objects) == expected
    assert normalize(mappings) == expected
    assert normalize(wrapped) == expected


def test_none_z_treated_as_zero():
    points = [{'x': float(i), 'y': 0.0, 'z': None} for i in range(21)]
    vector = normalize(points)
    assert vector[2::3] == tuple([0.0] * 21)


@pytest.mark.parametrize("count", [0, 20, 22])
def test_wrong_keypoint_count_rejected(make_hand, count):
    points = (make_hand(0) * 2)[:count]
    with pytest.raises(InvalidSampleError):
        normalize(points)


def test_distance_3d():
    assert distance_3d((0, 0, 0), (1, 2, 2)) == 3.0
