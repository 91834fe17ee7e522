from __future__ import annotations

from types import SimpleNamespace

import numpy as np
import pytest

from proctorsignals.errors import TopologyError
from proctorsignals.landmarks.landmark_set import (
    Frame,
    as_landmark_set,
    require_indices,
    validate_topology,
)


def test_as_landmark_set_returns_read_only_copy() -> None:
    source = np.zeros((4, 3), dtype=np.float64)
    values = as_landmark_set(source)

    assert values is not source
    assert values.flags.writeable is False
    source[0, 0] = 9.0
    assert values[0, 0] == 0.0


def test_as_landmark_set_accepts_attribute_landmarks() -> None:
    points = [SimpleNamespace(x=0.1, y=0.2, z=0.3), SimpleNamespace(x=0.4, y=0.5, z=0.6)]
    values = as_landmark_set(points)

    assert values.shape == (2, 3)
    assert values.dtype == np.float64
    assert np.allclose(values[1], [0.4, 0.5, 0.6])


def test_as_landmark_set_rejects_bad_shape_and_non_finite() -> None:
    with pytest.raises(TopologyError, match=r"shape \(N, 3\)"):
        as_landmark_set(np.zeros((4, 2)))
    with pytest.raises(TopologyError, match="non-finite"):
        as_landmark_set([[0.0, np.nan, 0.0]])


def test_require_indices_names_missing_landmarks() -> None:
    values = as_landmark_set(np.zeros((150, 3)))
    require_indices(values, (0, 1, 145), detector="blink")

    with pytest.raises(TopologyError, match=r"blink requires landmark indices \[159, 386\]"):
        require_indices(values, (1, 159, 145, 386), detector="blink")


def test_validate_topology_checks_exact_count_when_configured() -> None:
    values = as_landmark_set(np.zeros((478, 3)))
    validate_topology(values)
    validate_topology(values, expected_count=478)

    with pytest.raises(TopologyError, match="expected 468"):
        validate_topology(values, expected_count=468)
    with pytest.raises(TopologyError, match="pipeline requires"):
        validate_topology(as_landmark_set(np.zeros((200, 3))))


def test_frame_from_landmarks_converts_every_face() -> None:
    frame = Frame.from_landmarks(33, [np.zeros((5, 3)), [[0.0, 0.0, 0.0]]])

    assert frame.timestamp_ms == 33
    assert frame.face_count == 2
    assert all(face.flags.writeable is False for face in frame.faces)
    assert Frame(timestamp_ms=0).face_count == 0
