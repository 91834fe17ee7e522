from __future__ import annotations

import numpy as np
import pytest

from proctorsignals.analysis.blink import BlinkSignal, EyeBlinkDetector, compute_blink_signal
from proctorsignals.config import BlinkCalibration
from proctorsignals.errors import SignalMapError, TopologyError


def _eye_landmarks(points: dict[int, tuple[float, float]], count: int = 478) -> np.ndarray:
    landmarks = np.zeros((count, 3), dtype=np.float64)
    for idx, (x, y) in points.items():
        landmarks[idx, :2] = (x, y)
    return landmarks


def test_both_eyes_blink_when_lid_gaps_fall_below_threshold() -> None:
    landmarks = _eye_landmarks(
        {
            159: (0.40, 0.30),
            145: (0.40, 0.34),
            386: (0.60, 0.30),
            374: (0.60, 0.33),
            1: (0.50, 0.40),
        }
    )

    signal = compute_blink_signal(landmarks)

    assert signal.left == pytest.approx(0.04)
    assert signal.right == pytest.approx(0.03)
    assert signal.threshold == pytest.approx(0.2114)
    assert signal.is_left_blinking is True
    assert signal.is_right_blinking is True


def test_open_eye_and_depth_is_ignored() -> None:
    landmarks = _eye_landmarks({159: (0.4, 0.0), 145: (0.4, 0.5), 386: (0.6, 0.3), 374: (0.6, 0.31)})
    landmarks[145, 2] = 10.0

    signal = compute_blink_signal(landmarks)

    assert signal.left == pytest.approx(0.5)
    assert signal.is_left_blinking is False
    assert signal.is_right_blinking is True


def test_gap_equal_to_threshold_is_not_a_blink() -> None:
    signal = BlinkSignal(left=0.2, right=0.1999, threshold=0.2)

    assert signal.is_left_blinking is False
    assert signal.is_right_blinking is True


def test_custom_calibration_changes_threshold() -> None:
    landmarks = _eye_landmarks({1: (1.0, 2.0)})
    detector = EyeBlinkDetector(BlinkCalibration(x_coef=1.0, y_coef=0.5, intercept=0.0))

    assert detector.compute(landmarks).threshold == pytest.approx(2.0)


def test_missing_eye_landmarks_are_a_topology_error() -> None:
    with pytest.raises(TopologyError, match=r"blink requires landmark indices \[159, 145, 386, 374\]"):
        compute_blink_signal(np.zeros((10, 3)))


def test_signal_map_conversion_requires_every_key() -> None:
    signal = BlinkSignal(left=0.1, right=0.2, threshold=0.3)

    assert signal.as_signal_map() == {"left": 0.1, "right": 0.2, "threshold": 0.3}
    assert BlinkSignal.from_signal_map({"left": 0.1, "right": 0.2, "threshold": 0.3}) == signal
    with pytest.raises(SignalMapError, match="threshold"):
        BlinkSignal.from_signal_map({"left": 0.1, "right": 0.2})


def test_threshold_is_bit_reproducible() -> None:
    landmarks = np.random.default_rng(3).normal(size=(478, 3))

    first = compute_blink_signal(landmarks)
    second = compute_blink_signal(landmarks.copy())

    assert first == second
