from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Sequence, Union

from proctorsignals.analysis.alignment import AlignmentSignal
from proctorsignals.analysis.blink import BlinkSignal
from proctorsignals.errors import SynchronizationError

AlignmentInput = Union[AlignmentSignal, Mapping[str, float]]
BlinkInput = Union[BlinkSignal, Mapping[str, float]]


@dataclass(frozen=True)
class ProctorResult:
    is_left_eye_blinking: bool
    is_right_eye_blinking: bool
    horizontal_align: float
    vertical_align: float
    facial_activity: float
    face_movement: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _as_alignment(alignment: AlignmentInput) -> AlignmentSignal:
    if isinstance(alignment, AlignmentSignal):
        return alignment
    return AlignmentSignal.from_signal_map(alignment)


def _as_blink(blink: BlinkInput) -> BlinkSignal:
    if isinstance(blink, BlinkSignal):
        return blink
    return BlinkSignal.from_signal_map(blink)


def aggregate_result(
    alignment: AlignmentInput,
    blink: BlinkInput,
    activity: float,
    movement: float,
) -> ProctorResult:
    alignment_signal = _as_alignment(alignment)
    blink_signal = _as_blink(blink)
    return ProctorResult(
        is_left_eye_blinking=blink_signal.is_left_blinking,
        is_right_eye_blinking=blink_signal.is_right_blinking,
        horizontal_align=alignment_signal.horizontal_align,
        vertical_align=alignment_signal.vertical_align,
        facial_activity=float(activity),
        face_movement=float(movement),
    )


def aggregate_results(
    alignments: Sequence[AlignmentInput],
    blinks: Sequence[BlinkInput],
    activities: Sequence[float],
    movements: Sequence[float],
) -> list[ProctorResult]:
    """Combine index-aligned per-face signals of one frame.

    All four sequences must hold one entry per face. On a length mismatch
    nothing is produced for the frame.
    """
    lengths = {
        "alignments": len(alignments),
        "blinks": len(blinks),
        "activities": len(activities),
        "movements": len(movements),
    }
    if len(set(lengths.values())) != 1:
        detail = ", ".join(f"{name}={count}" for name, count in lengths.items())
        raise SynchronizationError(f"Per-face signal lists have mismatched lengths: {detail}")

    return [
        aggregate_result(alignment, blink, activity, movement)
        for alignment, blink, activity, movement in zip(alignments, blinks, activities, movements)
    ]
