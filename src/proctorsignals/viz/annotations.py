from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from proctorsignals.analysis.alignment import (
    DEFAULT_THRESHOLDS,
    NEUTRAL,
    AlignmentSignal,
    classify_horizontal,
    classify_vertical,
)
from proctorsignals.analysis.blink import BlinkSignal
from proctorsignals.analysis.result import ProctorResult
from proctorsignals.config import AlignmentThresholds

GREEN = (0, 255, 0)
RED = (255, 0, 0)

BLINK_TEXT = "Blink"

# combined result overlay, normalized coordinates
BLINK_STYLE = {"thickness": 3, "font_height": 0.03, "baseline": 0.25}
ALIGNMENT_STYLE = {"thickness": 4, "font_height": 0.04, "baseline": 0.2}
LEFT_EYE_POS = 0.08
RIGHT_EYE_POS = 0.64
HORIZONTAL_POS = 0.05
VERTICAL_POS = 0.6

# per-detector overlays; the alignment one is in pixels
BLINK_SIGNAL_STYLE = {"thickness": 5, "font_height": 0.05, "baseline": 0.25}
BLINK_SIGNAL_RIGHT_EYE_POS = 0.83
ALIGNMENT_SIGNAL_STYLE = {"thickness": 5, "font_height": 40.0, "baseline": 300.0}
ALIGNMENT_SIGNAL_HORIZONTAL_PX = 50.0
ALIGNMENT_SIGNAL_VERTICAL_PX = 450.0


@dataclass(frozen=True)
class TextAnnotation:
    text: str
    color: tuple[int, int, int]
    thickness: int
    font_height: float
    left: float
    baseline: float
    normalized: bool = True

    def as_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "color": list(self.color),
            "thickness": self.thickness,
            "font_height": self.font_height,
            "left": self.left,
            "baseline": self.baseline,
            "normalized": self.normalized,
        }


def _blink_annotation(is_blinking: bool, left: float, style: dict[str, Any]) -> TextAnnotation:
    return TextAnnotation(
        text=BLINK_TEXT if is_blinking else "",
        color=RED if is_blinking else GREEN,
        left=left,
        **style,
    )


def _alignment_annotation(
    label: str,
    left: float,
    style: dict[str, Any],
    normalized: bool = True,
) -> TextAnnotation:
    return TextAnnotation(
        text=label,
        color=GREEN if label == NEUTRAL else RED,
        left=left,
        normalized=normalized,
        **style,
    )


def project_result(
    result: ProctorResult,
    thresholds: AlignmentThresholds = DEFAULT_THRESHOLDS,
) -> list[TextAnnotation]:
    """Map one face's result to overlay text primitives in normalized coordinates."""
    return [
        _blink_annotation(result.is_left_eye_blinking, LEFT_EYE_POS, BLINK_STYLE),
        _blink_annotation(result.is_right_eye_blinking, RIGHT_EYE_POS, BLINK_STYLE),
        _alignment_annotation(
            classify_horizontal(result.horizontal_align, thresholds), HORIZONTAL_POS, ALIGNMENT_STYLE
        ),
        _alignment_annotation(
            classify_vertical(result.vertical_align, thresholds), VERTICAL_POS, ALIGNMENT_STYLE
        ),
    ]


def project_frame(
    frame_result: Any,
    thresholds: AlignmentThresholds = DEFAULT_THRESHOLDS,
) -> list[TextAnnotation]:
    """Overlay for the first face of a frame; frames without faces draw nothing."""
    results = frame_result.results
    if not results:
        return []
    return project_result(results[0], thresholds)


def project_blink_signals(blinks: Sequence[BlinkSignal]) -> list[TextAnnotation]:
    """Standalone blink overlay for the first face of a frame."""
    if not blinks:
        return []
    blink = blinks[0]
    return [
        _blink_annotation(blink.is_left_blinking, LEFT_EYE_POS, BLINK_SIGNAL_STYLE),
        _blink_annotation(blink.is_right_blinking, BLINK_SIGNAL_RIGHT_EYE_POS, BLINK_SIGNAL_STYLE),
    ]


def project_alignment_signals(
    alignments: Sequence[AlignmentSignal],
    thresholds: AlignmentThresholds = DEFAULT_THRESHOLDS,
) -> list[TextAnnotation]:
    """Standalone alignment overlay for the first face, positioned in pixels."""
    if not alignments:
        return []
    alignment = alignments[0]
    return [
        _alignment_annotation(
            classify_horizontal(alignment.horizontal_align, thresholds),
            ALIGNMENT_SIGNAL_HORIZONTAL_PX,
            ALIGNMENT_SIGNAL_STYLE,
            normalized=False,
        ),
        _alignment_annotation(
            classify_vertical(alignment.vertical_align, thresholds),
            ALIGNMENT_SIGNAL_VERTICAL_PX,
            ALIGNMENT_SIGNAL_STYLE,
            normalized=False,
        ),
    ]
