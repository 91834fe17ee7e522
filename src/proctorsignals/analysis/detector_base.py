from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Sequence, TypeVar

import numpy as np

SignalT = TypeVar("SignalT")


class SignalDetector(ABC, Generic[SignalT]):
    """Interface for stateless per-face signal computation."""

    required_indices: Sequence[int] = ()

    @abstractmethod
    def compute(self, landmarks: np.ndarray) -> SignalT:
        """Return the signal for one standardized landmark set."""


class TemporalDetector(ABC):
    """Interface for detectors comparing a face slot against its previous frame."""

    required_indices: Sequence[int] = ()

    @abstractmethod
    def select(self, landmarks: np.ndarray) -> np.ndarray:
        """Return the coordinates this detector tracks between frames."""

    @abstractmethod
    def update(self, state: Any, landmarks: np.ndarray) -> float:
        """Return the change since the slot's previous frame and advance ``state``."""
