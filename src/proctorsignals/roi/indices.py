from __future__ import annotations

from typing import Iterable

# MediaPipe face mesh topology.
FACE_ANCHOR = 0
NOSE_TIP = 1
LEFT_EYE_LIDS = (159, 145)
RIGHT_EYE_LIDS = (386, 374)

BLINK_INDICES = (NOSE_TIP, *LEFT_EYE_LIDS, *RIGHT_EYE_LIDS)
ALIGNMENT_INDICES = (NOSE_TIP,)
MOVEMENT_INDICES = (FACE_ANCHOR,)
REQUIRED_INDICES = tuple(sorted({*BLINK_INDICES, *ALIGNMENT_INDICES, *MOVEMENT_INDICES}))
MIN_LANDMARK_COUNT = max(REQUIRED_INDICES) + 1

AXIS_NAMES = ("x", "y", "z")


def dedupe_preserve_order(values: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    out: list[int] = []
    for value in values:
        idx = int(value)
        if idx not in seen:
            seen.add(idx)
            out.append(idx)
    return out
