from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import numpy as np

from proctorsignals.landmarks.landmark_set import Frame
from proctorsignals.landmarks.provider_base import LandmarkSource

SINGLE_FACE_LAYOUT = "single"
MULTI_FACE_LAYOUT = "multi"


@dataclass(frozen=True)
class LoadedLandmarks:
    npz_path: Path
    layout: str
    timestamps_ms: np.ndarray
    frame_indices: np.ndarray
    landmarks_xyz: np.ndarray
    face_counts: np.ndarray

    @property
    def frame_count(self) -> int:
        return int(self.timestamps_ms.shape[0])

    @property
    def max_faces(self) -> int:
        return int(self.landmarks_xyz.shape[1])

    @property
    def landmark_count(self) -> int:
        return int(self.landmarks_xyz.shape[2])

    def summary(self) -> dict[str, Any]:
        return {
            "npz_path": str(self.npz_path),
            "layout": self.layout,
            "frames": self.frame_count,
            "max_faces": self.max_faces,
            "landmark_count": self.landmark_count,
            "total_faces": int(np.sum(self.face_counts)),
            "first_timestamp_ms": int(self.timestamps_ms[0]) if self.frame_count else None,
            "last_timestamp_ms": int(self.timestamps_ms[-1]) if self.frame_count else None,
        }


def _missing_landmarks_message(npz_path: Path) -> str:
    return (
        f"Landmarks file not found: {npz_path}\n"
        "Expected an .npz with timestamps_ms and landmarks_xyz, plus presence (T, N, 3 layout) "
        "or face_counts (T, F, N, 3 layout)."
    )


def _validate_arrays(npz_path: Path, arrays: dict[str, np.ndarray]) -> str:
    missing_keys = {"timestamps_ms", "landmarks_xyz"}.difference(arrays)
    if missing_keys:
        missing = ", ".join(sorted(missing_keys))
        raise ValueError(f"landmarks.npz is missing required keys: {missing}")

    timestamps_ms = np.asarray(arrays["timestamps_ms"])
    landmarks_xyz = np.asarray(arrays["landmarks_xyz"])
    if timestamps_ms.ndim != 1:
        raise ValueError(f"timestamps_ms must be 1D in {npz_path}")

    expected_t = timestamps_ms.shape[0]
    if landmarks_xyz.ndim == 3:
        layout = SINGLE_FACE_LAYOUT
        count_key = "presence"
    elif landmarks_xyz.ndim == 4:
        layout = MULTI_FACE_LAYOUT
        count_key = "face_counts"
    else:
        raise ValueError(
            f"landmarks_xyz must have shape (T, N, 3) or (T, F, N, 3) in {npz_path}, "
            f"got {landmarks_xyz.shape}"
        )
    if landmarks_xyz.shape[-1] != 3:
        raise ValueError(f"landmarks_xyz last axis must hold xyz in {npz_path}, got {landmarks_xyz.shape}")
    if landmarks_xyz.shape[0] != expected_t:
        raise ValueError("landmarks_xyz length must match timestamps_ms length")

    if count_key not in arrays:
        raise ValueError(f"landmarks.npz with {layout}-face layout is missing required key: {count_key}")
    counts = np.asarray(arrays[count_key])
    if counts.ndim != 1 or counts.shape[0] != expected_t:
        raise ValueError(f"{count_key} must be 1D with one entry per timestamp")

    if "frame_indices" in arrays:
        frame_indices = np.asarray(arrays["frame_indices"])
        if frame_indices.ndim != 1 or frame_indices.shape[0] != expected_t:
            raise ValueError("frame_indices length must match timestamps_ms length")

    if expected_t > 1 and not np.all(np.diff(timestamps_ms.astype(np.int64)) > 0):
        raise ValueError(f"timestamps_ms must be strictly increasing in {npz_path}")
    return layout


def load_landmark_artifacts(npz_path: str | Path) -> LoadedLandmarks:
    resolved = Path(npz_path)
    if not resolved.exists():
        raise FileNotFoundError(_missing_landmarks_message(resolved))

    with np.load(resolved) as data:
        arrays = {name: data[name] for name in data.files}
    layout = _validate_arrays(resolved, arrays)

    timestamps_ms = np.asarray(arrays["timestamps_ms"], dtype=np.int64)
    t_count = timestamps_ms.shape[0]
    frame_indices = (
        np.asarray(arrays["frame_indices"], dtype=np.int64)
        if "frame_indices" in arrays
        else np.arange(t_count, dtype=np.int64)
    )
    landmarks_xyz = np.asarray(arrays["landmarks_xyz"], dtype=np.float64)
    if layout == SINGLE_FACE_LAYOUT:
        face_counts = np.asarray(arrays["presence"], dtype=bool).astype(np.int64)
        landmarks_xyz = landmarks_xyz[:, None, :, :]
    else:
        face_counts = np.asarray(arrays["face_counts"], dtype=np.int64)
        max_faces = landmarks_xyz.shape[1]
        if np.any(face_counts < 0) or np.any(face_counts > max_faces):
            raise ValueError(f"face_counts must be within [0, {max_faces}] in {resolved}")

    return LoadedLandmarks(
        npz_path=resolved,
        layout=layout,
        timestamps_ms=timestamps_ms,
        frame_indices=frame_indices,
        landmarks_xyz=landmarks_xyz,
        face_counts=face_counts,
    )


class NpzLandmarkSource(LandmarkSource):
    """Replay recorded landmark frames from an ``.npz`` artifact."""

    def __init__(self, npz_path: str | Path) -> None:
        self.loaded = load_landmark_artifacts(npz_path)

    def __len__(self) -> int:
        return self.loaded.frame_count

    def iter_frames(self) -> Iterator[Frame]:
        loaded = self.loaded
        for t_idx in range(loaded.frame_count):
            count = int(loaded.face_counts[t_idx])
            faces = [loaded.landmarks_xyz[t_idx, face_idx] for face_idx in range(count)]
            yield Frame.from_landmarks(int(loaded.timestamps_ms[t_idx]), faces)
