from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from proctorsignals.analysis.detector_base import SignalDetector
from proctorsignals.config import BlinkCalibration
from proctorsignals.errors import SignalMapError
from proctorsignals.landmarks.landmark_set import as_landmark_set, require_indices
from proctorsignals.roi.indices import BLINK_INDICES, LEFT_EYE_LIDS, NOSE_TIP, RIGHT_EYE_LIDS

BLINK_KEYS = ("left", "right", "threshold")
DEFAULT_CALIBRATION = BlinkCalibration()


@dataclass(frozen=True)
class BlinkSignal:
    """Eyelid gaps for both eyes plus the threshold below which an eye is closed."""

    left: float
    right: float
    threshold: float

    @property
    def is_left_blinking(self) -> bool:
        return self.left < self.threshold

    @property
    def is_right_blinking(self) -> bool:
        return self.right < self.threshold

    def as_signal_map(self) -> dict[str, float]:
        return {"left": self.left, "right": self.right, "threshold": self.threshold}

    @classmethod
    def from_signal_map(cls, signal_map: Mapping[str, float]) -> "BlinkSignal":
        missing = [key for key in BLINK_KEYS if key not in signal_map]
        if missing:
            raise SignalMapError(f"Blink signal map is missing required keys: {', '.join(missing)}")
        return cls(
            left=float(signal_map["left"]),
            right=float(signal_map["right"]),
            threshold=float(signal_map["threshold"]),
        )


def _lid_gap(values: np.ndarray, pair: tuple[int, int]) -> float:
    upper, lower = pair
    return float(np.linalg.norm(values[upper, :2] - values[lower, :2]))


def compute_blink_signal(
    landmarks: Any,
    calibration: BlinkCalibration = DEFAULT_CALIBRATION,
) -> BlinkSignal:
    values = as_landmark_set(landmarks)
    require_indices(values, BLINK_INDICES, detector="blink")
    nose = values[NOSE_TIP]
    return BlinkSignal(
        left=_lid_gap(values, LEFT_EYE_LIDS),
        right=_lid_gap(values, RIGHT_EYE_LIDS),
        threshold=calibration.threshold(float(nose[0]), float(nose[1])),
    )


class EyeBlinkDetector(SignalDetector[BlinkSignal]):
    required_indices = BLINK_INDICES

    def __init__(self, calibration: BlinkCalibration = DEFAULT_CALIBRATION) -> None:
        self.calibration = calibration

    def compute(self, landmarks: np.ndarray) -> BlinkSignal:
        return compute_blink_signal(landmarks, self.calibration)
