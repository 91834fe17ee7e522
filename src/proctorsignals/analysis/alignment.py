from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from proctorsignals.analysis.detector_base import SignalDetector
from proctorsignals.config import AlignmentThresholds
from proctorsignals.errors import SignalMapError
from proctorsignals.landmarks.landmark_set import as_landmark_set, require_indices
from proctorsignals.roi.indices import ALIGNMENT_INDICES, NOSE_TIP

ALIGNMENT_KEYS = ("horizontal_align", "vertical_align")
NEUTRAL = "Neutral"
DEFAULT_THRESHOLDS = AlignmentThresholds()


@dataclass(frozen=True)
class AlignmentSignal:
    """Nose tip offset in the standardized frame.

    Positive ``horizontal_align`` means looking right, positive
    ``vertical_align`` means looking down; 0.0 is neutral on both axes.
    """

    horizontal_align: float
    vertical_align: float

    def as_signal_map(self) -> dict[str, float]:
        return {"horizontal_align": self.horizontal_align, "vertical_align": self.vertical_align}

    @classmethod
    def from_signal_map(cls, signal_map: Mapping[str, float]) -> "AlignmentSignal":
        missing = [key for key in ALIGNMENT_KEYS if key not in signal_map]
        if missing:
            raise SignalMapError(
                f"Alignment signal map is missing required keys: {', '.join(missing)}"
            )
        return cls(
            horizontal_align=float(signal_map["horizontal_align"]),
            vertical_align=float(signal_map["vertical_align"]),
        )


def compute_alignment_signal(landmarks: Any) -> AlignmentSignal:
    values = as_landmark_set(landmarks)
    require_indices(values, ALIGNMENT_INDICES, detector="alignment")
    nose = values[NOSE_TIP]
    return AlignmentSignal(horizontal_align=float(nose[0]), vertical_align=float(nose[1]))


def classify_horizontal(value: float, thresholds: AlignmentThresholds = DEFAULT_THRESHOLDS) -> str:
    if value >= thresholds.right:
        return "Right"
    if value <= thresholds.left:
        return "Left"
    return NEUTRAL


def classify_vertical(value: float, thresholds: AlignmentThresholds = DEFAULT_THRESHOLDS) -> str:
    if value >= thresholds.down:
        return "Down"
    if value <= thresholds.up:
        return "Up"
    return NEUTRAL


class FaceAlignmentDetector(SignalDetector[AlignmentSignal]):
    required_indices = ALIGNMENT_INDICES

    def compute(self, landmarks: np.ndarray) -> AlignmentSignal:
        return compute_alignment_signal(landmarks)
