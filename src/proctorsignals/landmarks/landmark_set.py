from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

import numpy as np

from proctorsignals.errors import TopologyError
from proctorsignals.roi.indices import REQUIRED_INDICES, dedupe_preserve_order


def as_landmark_set(landmarks: object, *, name: str = "landmarks") -> np.ndarray:
    """Return ``landmarks`` as a read-only ``(N, 3)`` float64 array.

    Accepts any array-like of xyz rows, including sequences of objects with
    ``x``/``y``/``z`` attributes (e.g. MediaPipe ``NormalizedLandmark``).
    """
    if isinstance(landmarks, np.ndarray):
        values = np.asarray(landmarks, dtype=np.float64)
    else:
        rows = list(landmarks)  # type: ignore[call-overload]
        if rows and hasattr(rows[0], "x"):
            rows = [(lm.x, lm.y, getattr(lm, "z", 0.0)) for lm in rows]
        values = np.asarray(rows, dtype=np.float64)

    if values.ndim != 2 or values.shape[1] != 3:
        raise TopologyError(f"{name} must have shape (N, 3), got {values.shape}")
    if not np.isfinite(values).all():
        raise TopologyError(f"{name} contains non-finite coordinates")

    out = values.copy() if values is landmarks else values
    out.flags.writeable = False
    return out


def require_indices(
    landmarks: np.ndarray,
    indices: Iterable[int],
    *,
    detector: str,
) -> None:
    landmark_count = int(landmarks.shape[0])
    missing = [idx for idx in dedupe_preserve_order(indices) if idx < 0 or idx >= landmark_count]
    if missing:
        missing_text = ", ".join(str(idx) for idx in missing)
        raise TopologyError(
            f"{detector} requires landmark indices [{missing_text}] "
            f"but the landmark set has only {landmark_count} landmarks"
        )


def validate_topology(
    landmarks: np.ndarray,
    *,
    expected_count: int | None = None,
    indices: Sequence[int] = REQUIRED_INDICES,
) -> None:
    if expected_count is not None and landmarks.shape[0] != expected_count:
        raise TopologyError(
            f"Landmark set has {landmarks.shape[0]} landmarks, expected {expected_count}"
        )
    require_indices(landmarks, indices, detector="pipeline")


@dataclass(frozen=True)
class Frame:
    timestamp_ms: int
    faces: tuple[np.ndarray, ...] = field(default_factory=tuple)

    @classmethod
    def from_landmarks(cls, timestamp_ms: int, faces: Iterable[object]) -> "Frame":
        converted = tuple(
            as_landmark_set(face, name=f"faces[{idx}]") for idx, face in enumerate(faces)
        )
        return cls(timestamp_ms=int(timestamp_ms), faces=converted)

    @property
    def face_count(self) -> int:
        return len(self.faces)
