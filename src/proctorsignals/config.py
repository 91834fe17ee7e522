from __future__ import annotations

import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from proctorsignals.roi.indices import MIN_LANDMARK_COUNT


class ZeroVariancePolicy(str, Enum):
    zero = "zero"
    passthrough = "passthrough"
    error = "error"


class BlinkCalibration(BaseModel):
    """Affine blink threshold over the standardized nose tip position."""

    model_config = ConfigDict(frozen=True)

    x_coef: float = Field(default=0.0308, description="Weight of nose tip x")
    y_coef: float = Field(default=0.0803, description="Weight of nose tip y")
    intercept: float = Field(default=0.1476, description="Constant term")

    @field_validator("x_coef", "y_coef", "intercept")
    @classmethod
    def validate_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError(f"Blink calibration values must be finite, got: {value}")
        return value

    def threshold(self, x: float, y: float) -> float:
        return x * self.x_coef + y * self.y_coef + self.intercept


class AlignmentThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    right: float = Field(default=0.3, description="horizontal_align >= right -> Right")
    left: float = Field(default=-0.3, description="horizontal_align <= left -> Left")
    down: float = Field(default=0.6, description="vertical_align >= down -> Down")
    up: float = Field(default=-0.05, description="vertical_align <= up -> Up")

    @model_validator(mode="after")
    def validate_ordering(self) -> "AlignmentThresholds":
        if not self.left < self.right:
            raise ValueError(f"left threshold must be below right: {self.left} >= {self.right}")
        if not self.up < self.down:
            raise ValueError(f"up threshold must be below down: {self.up} >= {self.down}")
        return self


class PipelineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    zero_variance: ZeroVariancePolicy = Field(
        default=ZeroVariancePolicy.zero,
        description="Output for an axis whose standard deviation is zero",
    )
    max_workers: int = Field(default=1, ge=1, description="Threads used for per-face work")
    gate_on_tick: bool = Field(
        default=False,
        description="Hold each frame's results until a tick with the same timestamp arrives",
    )
    expected_landmark_count: Optional[int] = Field(
        default=None,
        description="Exact landmark count per face; None accepts any set covering required indices",
    )
    blink: BlinkCalibration = Field(default_factory=BlinkCalibration)
    alignment: AlignmentThresholds = Field(default_factory=AlignmentThresholds)

    @field_validator("expected_landmark_count")
    @classmethod
    def validate_expected_landmark_count(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < MIN_LANDMARK_COUNT:
            raise ValueError(
                f"expected_landmark_count must be >= {MIN_LANDMARK_COUNT}, got: {value}"
            )
        return value

    def as_summary(self) -> dict[str, Any]:
        return {
            "zero_variance": self.zero_variance.value,
            "max_workers": self.max_workers,
            "gate_on_tick": self.gate_on_tick,
            "expected_landmark_count": self.expected_landmark_count,
            "blink": self.blink.model_dump(),
            "alignment": self.alignment.model_dump(),
        }


def normalize_policy_value(policy: Any) -> ZeroVariancePolicy:
    if isinstance(policy, ZeroVariancePolicy):
        return policy
    value = str(policy.value) if hasattr(policy, "value") else str(policy)
    valid_values = {member.value for member in ZeroVariancePolicy}
    if value not in valid_values:
        valid = ", ".join(member.value for member in ZeroVariancePolicy)
        raise ValueError(f"Unsupported zero-variance policy '{value}'. Expected one of: {valid}")
    return ZeroVariancePolicy(value)
