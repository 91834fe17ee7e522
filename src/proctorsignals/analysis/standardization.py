from __future__ import annotations

import logging
from typing import Any, Iterable

import numpy as np

from proctorsignals.config import ZeroVariancePolicy, normalize_policy_value
from proctorsignals.errors import DegenerateStatisticsError
from proctorsignals.landmarks.landmark_set import as_landmark_set
from proctorsignals.roi.indices import AXIS_NAMES

logger = logging.getLogger(__name__)

DEGENERATE_STD = 1e-12


def axis_statistics(landmarks: Any) -> tuple[np.ndarray, np.ndarray]:
    """Return per-axis mean and population standard deviation."""
    values = as_landmark_set(landmarks)
    if values.shape[0] == 0:
        raise DegenerateStatisticsError("Cannot standardize an empty landmark set")
    return values.mean(axis=0), values.std(axis=0)


def find_degenerate_axes(landmarks: Any) -> tuple[str, ...]:
    _, std = axis_statistics(landmarks)
    return tuple(AXIS_NAMES[axis] for axis in range(3) if std[axis] <= DEGENERATE_STD)


def standardize_with_report(
    landmarks: Any,
    *,
    zero_variance: ZeroVariancePolicy | str = ZeroVariancePolicy.zero,
) -> tuple[np.ndarray, tuple[str, ...]]:
    """Standardize ``landmarks`` and name the axes that had zero spread.

    Both come from one pass over the per-axis statistics.
    """
    policy = normalize_policy_value(zero_variance)
    values = as_landmark_set(landmarks)
    mean, std = axis_statistics(values)

    out = np.empty_like(values)
    degenerate: list[str] = []
    for axis in range(3):
        column = values[:, axis]
        if std[axis] > DEGENERATE_STD:
            out[:, axis] = (column - mean[axis]) / std[axis]
            continue

        degenerate.append(AXIS_NAMES[axis])
        if policy is ZeroVariancePolicy.error:
            raise DegenerateStatisticsError(
                f"Axis '{AXIS_NAMES[axis]}' has zero variance (std={std[axis]:.3g}); "
                "cannot standardize"
            )
        logger.debug("Axis %s has zero variance; applying policy %s", AXIS_NAMES[axis], policy.value)
        out[:, axis] = 0.0 if policy is ZeroVariancePolicy.zero else column

    out.flags.writeable = False
    return out, tuple(degenerate)


def standardize_landmarks(
    landmarks: Any,
    *,
    zero_variance: ZeroVariancePolicy | str = ZeroVariancePolicy.zero,
) -> np.ndarray:
    """Map each axis to zero mean and unit population variance.

    ``zero_variance`` decides what a constant axis becomes: ``zero`` emits
    0.0, ``passthrough`` keeps the input values, ``error`` raises
    :class:`DegenerateStatisticsError`.
    """
    standardized, _ = standardize_with_report(landmarks, zero_variance=zero_variance)
    return standardized


def standardize_landmark_sets(
    landmark_sets: Iterable[Any],
    *,
    zero_variance: ZeroVariancePolicy | str = ZeroVariancePolicy.zero,
) -> list[np.ndarray]:
    return [
        standardize_landmarks(landmarks, zero_variance=zero_variance)
        for landmarks in landmark_sets
    ]
