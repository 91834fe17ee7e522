"""Frame-to-frame change detectors for tracked face slots.

Both detectors keep no state of their own. The previous frame's data lives
in a :class:`DeltaState` that the caller owns, one per face slot and
detector, usually through a :class:`DeltaStateArena`.

The first observation of a slot seeds its state and reports a delta of 0.0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from proctorsignals.analysis.detector_base import TemporalDetector
from proctorsignals.errors import TopologyError
from proctorsignals.landmarks.landmark_set import as_landmark_set, require_indices
from proctorsignals.roi.indices import FACE_ANCHOR, MOVEMENT_INDICES

logger = logging.getLogger(__name__)


@dataclass
class DeltaState:
    previous: Optional[np.ndarray] = None

    @property
    def is_seeded(self) -> bool:
        return self.previous is not None

    def clear(self) -> None:
        self.previous = None


def compute_delta(state: DeltaState, current: np.ndarray) -> float:
    """Return ``||current - previous||`` and store ``current`` as the new previous."""
    current_arr = np.array(current, dtype=np.float64, copy=True)
    if not np.isfinite(current_arr).all():
        raise TopologyError("Temporal delta input contains non-finite coordinates")

    if state.previous is None:
        state.previous = current_arr
        return 0.0

    if state.previous.shape != current_arr.shape:
        raise TopologyError(
            f"Temporal delta input changed shape from {state.previous.shape} "
            f"to {current_arr.shape}"
        )

    delta = float(np.linalg.norm((current_arr - state.previous).ravel()))
    state.previous = current_arr
    return delta


class FacialActivityDetector(TemporalDetector):
    """Whole-face shape change, usually fed standardized landmarks."""

    def select(self, landmarks: np.ndarray) -> np.ndarray:
        return as_landmark_set(landmarks)

    def update(self, state: DeltaState, landmarks: Any) -> float:
        return compute_delta(state, self.select(landmarks))


class FaceMovementDetector(TemporalDetector):
    """On-screen displacement of the face anchor landmark (index 0)."""

    required_indices = MOVEMENT_INDICES

    def select(self, landmarks: np.ndarray) -> np.ndarray:
        values = as_landmark_set(landmarks)
        require_indices(values, self.required_indices, detector="movement")
        return values[FACE_ANCHOR]

    def update(self, state: DeltaState, landmarks: Any) -> float:
        return compute_delta(state, self.select(landmarks))


@dataclass
class FaceSlotState:
    activity: DeltaState = field(default_factory=DeltaState)
    movement: DeltaState = field(default_factory=DeltaState)


class DeltaStateArena:
    """Per-face-slot temporal state keyed by position in the frame's face list.

    Slots carry no tracking identity, so a change in face count invalidates
    every slot and all of them are reset.
    """

    def __init__(self) -> None:
        self._slots: list[FaceSlotState] = []
        self._face_count: Optional[int] = None

    @property
    def face_count(self) -> Optional[int]:
        return self._face_count

    def states_for(self, face_count: int) -> list[FaceSlotState]:
        if face_count < 0:
            raise ValueError(f"face_count must be >= 0, got: {face_count}")
        if face_count != self._face_count:
            if self._face_count is not None:
                logger.debug(
                    "Face count changed from %d to %d; resetting temporal state",
                    self._face_count,
                    face_count,
                )
            self._slots = [FaceSlotState() for _ in range(face_count)]
            self._face_count = face_count
        return list(self._slots)

    def reset(self) -> None:
        self._slots = []
        self._face_count = None
