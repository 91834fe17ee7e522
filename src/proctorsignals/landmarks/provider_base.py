from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from proctorsignals.landmarks.landmark_set import Frame


class LandmarkSource(ABC):
    """Interface for producers of timestamped multi-face landmark frames."""

    @abstractmethod
    def iter_frames(self) -> Iterator[Frame]:
        """Yield frames in strictly increasing timestamp order."""
