from __future__ import annotations

import math

import numpy as np
import pytest

from proctorsignals.analysis.temporal import (
    DeltaState,
    DeltaStateArena,
    FaceMovementDetector,
    FacialActivityDetector,
    compute_delta,
)
from proctorsignals.errors import TopologyError


def _face_with_anchor(x: float, y: float, z: float = 0.0, count: int = 478) -> np.ndarray:
    landmarks = np.full((count, 3), 0.5, dtype=np.float64)
    landmarks[0] = (x, y, z)
    return landmarks


def test_compute_delta_seeds_then_reports_euclidean_norm() -> None:
    state = DeltaState()
    assert state.is_seeded is False

    assert compute_delta(state, np.asarray([1.0, 2.0, 3.0])) == 0.0
    assert state.is_seeded is True
    assert compute_delta(state, np.asarray([4.0, 6.0, 3.0])) == pytest.approx(5.0)
    assert compute_delta(state, np.asarray([4.0, 6.0, 3.0])) == 0.0


def test_compute_delta_stores_a_private_copy() -> None:
    state = DeltaState()
    current = np.zeros(3)
    compute_delta(state, current)
    current[0] = 1.0

    assert compute_delta(state, np.zeros(3)) == 0.0


def test_compute_delta_rejects_shape_change_without_touching_state() -> None:
    state = DeltaState()
    compute_delta(state, np.zeros((4, 3)))

    with pytest.raises(TopologyError, match="changed shape"):
        compute_delta(state, np.zeros((5, 3)))
    assert state.previous is not None
    assert state.previous.shape == (4, 3)

    with pytest.raises(TopologyError, match="non-finite"):
        compute_delta(state, np.full((4, 3), np.inf))


def test_face_movement_is_zero_for_a_still_anchor() -> None:
    detector = FaceMovementDetector()
    state = DeltaState()

    assert detector.update(state, _face_with_anchor(0.1, 0.2)) == 0.0
    assert detector.update(state, _face_with_anchor(0.1, 0.2)) == 0.0
    assert detector.update(state, _face_with_anchor(0.4, 0.6)) == pytest.approx(0.5)


def test_face_movement_ignores_other_landmarks() -> None:
    detector = FaceMovementDetector()
    state = DeltaState()
    first = _face_with_anchor(0.1, 0.2)
    second = first.copy()
    second[1:] += 0.3

    detector.update(state, first)
    assert detector.update(state, second) == 0.0


def test_facial_activity_sums_over_whole_set() -> None:
    detector = FacialActivityDetector()
    state = DeltaState()
    first = np.zeros((4, 3))
    second = np.ones((4, 3))

    assert detector.update(state, first) == 0.0
    assert detector.update(state, second) == pytest.approx(math.sqrt(12.0))


def test_arena_keeps_slots_while_face_count_is_stable() -> None:
    arena = DeltaStateArena()
    assert arena.face_count is None

    slots = arena.states_for(2)
    compute_delta(slots[0].activity, np.zeros(3))
    again = arena.states_for(2)

    assert arena.face_count == 2
    assert again[0] is slots[0]
    assert again[0].activity.is_seeded is True
    assert again[1].activity.is_seeded is False
    assert slots[0].activity is not slots[1].activity


def test_arena_resets_every_slot_when_face_count_changes() -> None:
    arena = DeltaStateArena()
    slots = arena.states_for(1)
    compute_delta(slots[0].movement, np.zeros(3))

    grown = arena.states_for(2)
    assert all(not slot.movement.is_seeded for slot in grown)

    assert arena.states_for(0) == []
    arena.reset()
    assert arena.face_count is None

    with pytest.raises(ValueError, match="face_count"):
        arena.states_for(-1)
